"""
Выбор рабочего множества (working set selection) для SMO.

Алгоритм основан на работе:
- Fan, R.-E., Chen, P.-H., & Lin, C.-J. (2005). "Working Set Selection Using
  Second Order Information for Training Support Vector Machines"

Двойственная задача (минимизация):
    min_α f(α) = 1/2 α^T Q α - e^T α,   Q_ij = y_i y_j K(x_i, x_j)
    s.t. 0 ≤ α_i ≤ C

    G = ∇f(α) = Qα - e;  старт: α = 0, G = -1

Множества:
    I_up  = {t | y_t = +1, α_t < C} ∪ {t | y_t = -1, α_t > 0}
    I_low = {t | y_t = +1, α_t > 0} ∪ {t | y_t = -1, α_t < C}

Сходимость: max_{I_up}(-y G) - min_{I_low}(-y G) < ε
"""

import abc
from typing import Tuple

import numpy as np
from numba import njit

from .exceptions import check_positive

# Пара-признак сходимости: оба индекса невалидны
CONVERGED = (-1, -1)


# =============================================================================
# Numba-оптимизированные сканирования
# =============================================================================

@njit(cache=True)
def select_i(y: np.ndarray, alpha: np.ndarray, gradient: np.ndarray, C: float) -> Tuple[int, float]:
    """
    Выбор i: максимум -y_k·G_k по I_up.

    Returns:
        (i, max_grad); i = -1, если I_up пусто
    """
    n = len(y)
    max_i = -1
    max_grad = -np.inf

    for k in range(n):
        # I_up: α_k < C для y_k > 0, или α_k > 0 для y_k < 0
        if (y[k] > 0 and alpha[k] < C) or (y[k] < 0 and alpha[k] > 0.0):
            temp_grad = -y[k] * gradient[k]
            # >= : при равенстве побеждает последний индекс
            if temp_grad >= max_grad:
                max_grad = temp_grad
                max_i = k

    return max_i, max_grad


@njit(cache=True)
def select_j_second_order(
    y: np.ndarray,
    alpha: np.ndarray,
    gradient: np.ndarray,
    K: np.ndarray,
    i: int,
    max_grad: float,
    C: float,
    tau: float
) -> Tuple[int, float]:
    """
    Выбор j по второму порядку (WSS3).

    Для k ∈ I_low с b = max_grad + y_k·G_k > 0:
        a = K_ii + K_kk - 2·y_i·y_k·K_ik   (a <= 0 -> τ = ε²)
        j = argmin(-b²/a)

    Returns:
        (j, min_grad); j = -1, если подходящего k нет
    """
    n = len(y)
    min_j = -1
    min_grad = np.inf
    min_obj = np.inf

    for k in range(n):
        # I_low: α_k > 0 для y_k > 0, или α_k < C для y_k < 0
        if (y[k] > 0 and alpha[k] > 0.0) or (y[k] < 0 and alpha[k] < C):
            neg_y_grad = -y[k] * gradient[k]
            b = max_grad - neg_y_grad

            if neg_y_grad <= min_grad:
                min_grad = neg_y_grad
            if not b > 0.0:
                continue

            a = K[i, i] + K[k, k] - 2.0 * y[i] * y[k] * K[i, k]
            if a <= 0.0:
                # Численно неположительно определённое ядро
                a = tau

            obj = -(b * b) / a
            if obj <= min_obj:
                min_obj = obj
                min_j = k

    return min_j, min_grad


@njit(cache=True)
def select_j_first_order(
    y: np.ndarray,
    alpha: np.ndarray,
    gradient: np.ndarray,
    max_grad: float,
    C: float
) -> Tuple[int, float]:
    """
    Выбор j по первому порядку (maximal violating pair): минимум -y_k·G_k
    по I_low среди k с -y_k·G_k < max_grad.

    Returns:
        (j, min_grad)
    """
    n = len(y)
    min_j = -1
    min_grad = np.inf

    for k in range(n):
        if (y[k] > 0 and alpha[k] > 0.0) or (y[k] < 0 and alpha[k] < C):
            neg_y_grad = -y[k] * gradient[k]
            if neg_y_grad <= min_grad:
                min_grad = neg_y_grad
                if neg_y_grad < max_grad:
                    min_j = k

    return min_j, min_grad


# =============================================================================
# Стратегии выбора
# =============================================================================

class WorkingSetSelector(abc.ABC):
    """
    Стратегия выбора пары (i, j) для совместной оптимизации.

    Солвер синхронизирует с ней матрицу Грама, метки, C и ε через prepare().
    """

    def __init__(self, seed=None):
        """
        Args:
            seed: Seed генератора для случайного выбора j при вырожденности
        """
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self.K = None
        self.y = None
        self.C = 1.0
        self.epsilon = 1e-3

    def prepare(self, K: np.ndarray, y: np.ndarray, C: float, epsilon: float):
        """
        Args:
            K: Матрица Грама (n_samples, n_samples)
            y: Метки {-1, +1}
            C: Верхняя граница α
            epsilon: Допуск сходимости ε
        """
        check_positive("C", C)
        check_positive("epsilon", epsilon)
        self.K = np.ascontiguousarray(K, dtype=np.float64)
        self.y = np.ascontiguousarray(y, dtype=np.float64)
        self.C = float(C)
        self.epsilon = float(epsilon)

    def initialize(self, alpha: np.ndarray, gradient: np.ndarray):
        """Стартовая точка: α = 0, G = -1 (на месте)."""
        alpha.fill(0.0)
        gradient.fill(-1.0)

    def get_working_set(self, gradient: np.ndarray, alpha: np.ndarray) -> Tuple[int, int]:
        """
        Новая пара (i, j) или CONVERGED = (-1, -1).

        Args:
            gradient: Текущий градиент G
            alpha: Текущие α

        Returns:
            (i, j)
        """
        i, max_grad = select_i(self.y, alpha, gradient, self.C)
        j, min_grad = self._select_j(gradient, alpha, i, max_grad)

        if i < 0 or max_grad - min_grad < self.epsilon:
            return CONVERGED

        if j < 0 or i == j:
            j = self._random_partner(i)

        return int(i), int(j)

    @abc.abstractmethod
    def _select_j(self, gradient, alpha, i, max_grad) -> Tuple[int, float]:
        pass

    def _random_partner(self, i: int) -> int:
        """Равномерно случайный j из [0, m-1], j != i при m > 1."""
        m = len(self.y)
        if m <= 1:
            return 0
        j = int(self._rng.integers(0, m - 1))
        if j >= i:
            j += 1
        return j


class WorkingSetSelection3(WorkingSetSelector):
    """
    Working Set Selection 3: выбор j с использованием второго порядка.

    i - максимальный нарушитель KKT, j минимизирует -b²/a, то есть даёт
    наибольшее убывание целевой функции при оптимизации пары.
    """

    def _select_j(self, gradient, alpha, i, max_grad):
        tau = self.epsilon ** 2
        return select_j_second_order(self.y, alpha, gradient, self.K, i, max_grad, self.C, tau)


class MaximalViolatingPairSelection(WorkingSetSelector):
    """Выбор максимально нарушающей пары (первый порядок, Keerthi et al. 2001)."""

    def _select_j(self, gradient, alpha, i, max_grad):
        return select_j_first_order(self.y, alpha, gradient, max_grad, self.C)
