"""
Ядра (kernels) для вычисления попарного сходства и матрицы Грама.

- gram(X): полная симметричная матрица K[i, j] = k(x_i, x_j), O(n²) вычислений
  ядра; считается верхний треугольник и зеркалируется
- compute(x1, x2): одно значение ядра
- project(X, x): сходство новой точки со всеми обучающими строками X
  (используется при предсказании, не при обучении)

Оптимизации:
- Numba JIT: скалярные произведения для матрицы Грама
- prange: строки матрицы считаются параллельно, каждый элемент (i, j), i <= j,
  записывается ровно одной итерацией внешнего цикла
"""

import abc

import numpy as np
from numba import njit, prange

from .exceptions import InvalidInputShapeError, check_positive
from .functions import Function, Logistic


# =============================================================================
# Numba-оптимизированные функции ядра
# =============================================================================

@njit(parallel=True, fastmath=True, cache=True)
def linear_gram(X: np.ndarray) -> np.ndarray:
    """
    Матрица скалярных произведений K = X @ X.T по верхнему треугольнику.

    Args:
        X: Матрица данных (n_samples, n_features), C-contiguous float64

    Returns:
        K: Симметричная матрица (n_samples, n_samples)
    """
    n_samples = X.shape[0]
    K = np.zeros((n_samples, n_samples), dtype=np.float64)
    for i in prange(n_samples):
        x_i = X[i]
        for j in range(i, n_samples):
            xy = np.dot(x_i, X[j])
            K[i, j] = xy
            K[j, i] = xy
    return K


@njit(fastmath=True, cache=True)
def linear_kernel_row(X: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Строка скалярных произведений: K_row[i] = X[i] · x."""
    n_samples = X.shape[0]
    K_row = np.empty(n_samples, dtype=np.float64)
    for i in range(n_samples):
        K_row[i] = np.dot(X[i], x)
    return K_row


def _as_matrix(X) -> np.ndarray:
    X = np.ascontiguousarray(X, dtype=np.float64)
    if X.ndim != 2:
        raise InvalidInputShapeError(f"X должна быть двумерной, получено ndim={X.ndim}")
    return X


def _as_vector(x) -> np.ndarray:
    return np.ascontiguousarray(x, dtype=np.float64).ravel()


# =============================================================================
# Ядра
# =============================================================================

class Kernel(abc.ABC):
    """Интерфейс ядра: попарное сходство, матрица Грама и проекция."""

    @property
    @abc.abstractmethod
    def is_linear(self) -> bool:
        """True, если ядро совпадает со скалярным произведением."""

    @abc.abstractmethod
    def compute(self, x1, x2) -> float:
        """Значение ядра k(x1, x2)."""

    @abc.abstractmethod
    def gram(self, X) -> np.ndarray:
        """Матрица Грама (n_samples, n_samples)."""

    @abc.abstractmethod
    def project(self, X, x) -> np.ndarray:
        """Вектор (n_samples,) значений k(X[i], x)."""


class LinearKernel(Kernel):
    """Линейное ядро: k(x_i, x_j) = x_i^T x_j"""

    @property
    def is_linear(self) -> bool:
        return True

    def compute(self, x1, x2) -> float:
        return float(np.dot(_as_vector(x1), _as_vector(x2)))

    def gram(self, X) -> np.ndarray:
        return linear_gram(_as_matrix(X))

    def project(self, X, x) -> np.ndarray:
        return linear_kernel_row(_as_matrix(X), _as_vector(x))

    def __repr__(self):
        return "LinearKernel()"


class LogisticKernel(Kernel):
    """
    Логистическое ядро: k(x_i, x_j) = f(λ · x_i^T x_j).

    f по умолчанию - сигмоида (Logistic). Масштаб λ применяется одинаково
    в gram, compute и project, поэтому все три пути дают одни и те же
    значения (с точностью до порядка суммирования в скалярном произведении).
    """

    def __init__(self, lambda_: float = 1.0, function: Function = None):
        """
        Args:
            lambda_: Масштаб скалярного произведения λ (default: 1.0)
            function: Сжимающая функция f (default: Logistic)
        """
        check_positive("lambda_", lambda_)
        self.lambda_ = lambda_
        self.function = function if function is not None else Logistic()

    @property
    def is_linear(self) -> bool:
        return False

    def compute(self, x1, x2) -> float:
        xy = np.dot(_as_vector(x1), _as_vector(x2))
        return self.function.compute(self.lambda_ * xy)

    def gram(self, X) -> np.ndarray:
        return self.function.compute(self.lambda_ * linear_gram(_as_matrix(X)))

    def project(self, X, x) -> np.ndarray:
        xy = linear_kernel_row(_as_matrix(X), _as_vector(x))
        return self.function.compute(self.lambda_ * xy)

    def __repr__(self):
        return f"LogisticKernel(lambda_={self.lambda_}, function={type(self.function).__name__})"
