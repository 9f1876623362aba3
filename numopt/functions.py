"""
Дифференцируемые скалярные функции (squashing / activation).

Функция задаётся на скалярах и поэлементно применяется к векторам:
    compute(x), derivative(x)  - скаляр -> float, массив -> массив той же формы
    maximum, minimum           - границы области значений
    minimize(x)                - Σ_k f(x_k), просто свёртка, а не оптимизатор

Логистические кривые считаются через scipy.special.expit: нет переполнения
exp при больших отрицательных аргументах.
"""

import abc

import numpy as np
from scipy.special import expit


class Function(abc.ABC):
    """Поэлементная скалярная функция с аналитической производной."""

    @property
    @abc.abstractmethod
    def maximum(self) -> float:
        """Верхняя граница области значений."""

    @property
    @abc.abstractmethod
    def minimum(self) -> float:
        """Нижняя граница области значений."""

    @abc.abstractmethod
    def _compute(self, x: np.ndarray) -> np.ndarray:
        pass

    @abc.abstractmethod
    def _derivative(self, x: np.ndarray) -> np.ndarray:
        pass

    def compute(self, x):
        """
        f(x) для скаляра или поэлементно для вектора.

        Args:
            x: Скаляр или array-like

        Returns:
            float для скаляра, np.ndarray той же формы для массива
        """
        return _unwrap(self._compute(np.asarray(x, dtype=np.float64)))

    def derivative(self, x):
        """f'(x) для скаляра или поэлементно для вектора."""
        return _unwrap(self._derivative(np.asarray(x, dtype=np.float64)))

    def minimize(self, x) -> float:
        """Сумма значений f(x_k) по всем элементам."""
        return float(np.sum(self._compute(np.asarray(x, dtype=np.float64))))


# Границы открытого интервала (0, 1) в float64
_OPEN_LOWER = np.nextafter(0.0, 1.0)
_OPEN_UPPER = np.nextafter(1.0, 0.0)


def _unwrap(result):
    if np.ndim(result) == 0:
        return float(result)
    return result


class Logistic(Function):
    """
    Сигмоида: f(x) = 1 / (1 + e^{-x}).

    f'(x) = f(x)·(1 - f(x)), область значений (0, 1).
    """

    @property
    def maximum(self) -> float:
        return 1.0

    @property
    def minimum(self) -> float:
        return 0.0

    def _compute(self, x):
        return expit(x)

    def _derivative(self, x):
        c = expit(x)
        return c * (1.0 - c)


class SteepLogistic(Function):
    """
    Крутая логистическая кривая: f(x) = 1 / (1 + e^{-πx}).

    f'(x) = π·f(x)·(1 - f(x)), область значений (0, 1), f(0) = 0.5.
    Значение ограничено ближайшими к 0 и 1 числами float64, поэтому f
    остаётся строго внутри (0, 1) и при больших |x|, где expit насыщается.
    """

    @property
    def maximum(self) -> float:
        return 1.0

    @property
    def minimum(self) -> float:
        return 0.0

    def _compute(self, x):
        return np.clip(expit(np.pi * x), _OPEN_LOWER, _OPEN_UPPER)

    def _derivative(self, x):
        c = self._compute(x)
        return np.pi * c * (1.0 - c)
