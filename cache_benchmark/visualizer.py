import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np

from cache_benchmark.metrics import MetricsCollector


class BenchmarkVisualizer:
    """
    Визуализатор результатов бенчмарка:
      - plot_latency_distribution: гистограммы задержек чтения по бэкендам
      - plot_read_outcomes: попадания / промахи / ошибки по бэкендам
      - plot_store_timeline: дорожки режима Failing для каждого хранилища
    """

    def __init__(self, metrics: MetricsCollector, t_end: float = None):
        self.metrics = metrics
        self.summary = metrics.summary()
        self.scenarios = list(self.summary["scenarios"])
        self.transitions = self.summary["store_transitions"]

        all_times = [t["time"] for t in self.transitions]
        self.t_end = t_end if t_end is not None else (max(all_times) if all_times else 0.0)

        self.outcome_colors = {
            "hits": "#4caf50",
            "misses": "#ff9800",
            "errors": "#f44336",
        }
        self.outcome_labels = {
            "hits": "Попадание",
            "misses": "Промах",
            "errors": "Ошибка хранилища",
        }

    def plot_latency_distribution(self, ax=None, bins: int = 50):
        """
        Гистограммы задержек в логарифмической шкале: быстрые попадания,
        промахи порядка задержки хранилища и редкие долгие отказы.
        """
        if ax is None:
            fig, ax = plt.subplots(figsize=(10, 4))

        samples = {name: self.metrics.latencies(name) for name in self.scenarios}
        positive = [v for lat in samples.values() for v in lat if v > 0]
        if positive:
            lo, hi = min(positive), max(positive)
            if hi <= lo:
                hi = lo * 10
            edges = np.logspace(np.log10(lo), np.log10(hi), bins)
            for name, lat in samples.items():
                ax.hist([v for v in lat if v > 0], bins=edges, histtype="step", label=name)
            ax.set_xscale("log")
            ax.set_yscale("log")
            ax.legend(loc="upper right")

        ax.set_xlabel("Задержка чтения (с)")
        ax.set_ylabel("Число чтений")
        ax.set_title("Распределение задержек")
        return ax

    def plot_read_outcomes(self, ax=None):
        """Столбцы: попадания и промахи стопкой, ошибки отдельным столбцом."""
        if ax is None:
            fig, ax = plt.subplots(figsize=(8, 4))

        x = np.arange(len(self.scenarios))
        width = 0.35
        data = self.summary["scenarios"]
        hits = [data[n]["hits"] for n in self.scenarios]
        misses = [data[n]["misses"] for n in self.scenarios]
        errors = [data[n]["errors"] for n in self.scenarios]

        ax.bar(x - width / 2, hits, width, color=self.outcome_colors["hits"])
        ax.bar(x - width / 2, misses, width, bottom=hits, color=self.outcome_colors["misses"])
        ax.bar(x + width / 2, errors, width, color=self.outcome_colors["errors"])

        ax.set_xticks(x)
        ax.set_xticklabels(self.scenarios)
        ax.set_ylabel("Число чтений")
        ax.set_title("Исходы чтений")

        patches = [
            mpatches.Patch(color=self.outcome_colors[k], label=self.outcome_labels[k])
            for k in self.outcome_colors
        ]
        ax.legend(handles=patches, bbox_to_anchor=(1.02, 1), loc="upper left")
        return ax

    def plot_store_timeline(self, ax=None):
        """Отрезки времени в режиме Failing по каждому хранилищу."""
        if ax is None:
            fig, ax = plt.subplots(figsize=(12, 3))

        stores = sorted({t["store"] for t in self.transitions})
        height = 0.4
        for y, store in enumerate(stores):
            started = None
            for rec in (t for t in self.transitions if t["store"] == store):
                if rec["failing"]:
                    started = rec["time"]
                elif started is not None:
                    ax.broken_barh([(started, rec["time"] - started)], (y - height / 2, height),
                                   facecolors=self.outcome_colors["errors"], edgecolors="black")
                    started = None
            # отказ, не закончившийся до конца прогона
            if started is not None:
                ax.broken_barh([(started, self.t_end - started)], (y - height / 2, height),
                               facecolors=self.outcome_colors["errors"], edgecolors="black")

        ax.set_ylim(-0.5, max(len(stores), 1) - 0.5)
        ax.set_xlim(0, self.t_end or 1.0)
        ax.margins(x=0)
        ax.set_yticks(range(len(stores)))
        ax.set_yticklabels(stores)
        ax.set_xlabel("Время")
        ax.set_title("Отказы хранилищ")
        return ax

    def show_all(self):
        """
        Выводит все графики на одной фигуре.
        """
        fig = plt.figure(constrained_layout=True, figsize=(14, 10))
        gs = fig.add_gridspec(3, 1, height_ratios=[2, 2, 1])

        self.plot_latency_distribution(fig.add_subplot(gs[0, 0]))
        self.plot_read_outcomes(fig.add_subplot(gs[1, 0]))
        self.plot_store_timeline(fig.add_subplot(gs[2, 0]))

        plt.show()
        return fig
