"""
Дифференцируемые функции стоимости для градиентного спуска.

Градиент - аналитическая производная той же стоимости, что возвращает
compute_cost, поэтому проверки сходимости по изменению стоимости корректны.

L2-регуляризация (weight decay) не штрафует свободный член θ[0]:
    J += λ/(2m) · Σ_{k>=1} θ_k²
    ∇_k += λ/m · θ_k,   k >= 1
"""

import abc

import numpy as np

from .exceptions import InvalidHyperparameterError, check_shapes
from .functions import Function, Logistic

# Границы h в логистической стоимости
_H_MIN = 1e-15


class CostFunction(abc.ABC):
    """Стоимость J(θ) и её градиент на обучающей выборке (X, y)."""

    def __init__(self, X: np.ndarray, y: np.ndarray, lambda_: float = 0.0):
        """
        Args:
            X: Матрица признаков (n_samples, n_features), включая столбец единиц
            y: Целевые значения (n_samples,)
            lambda_: Коэффициент L2-регуляризации (default: 0.0)
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        check_shapes(X, y)
        if lambda_ < 0.0:
            raise InvalidHyperparameterError(f"lambda_ должно быть >= 0, получено {lambda_}")

        self.X = X
        self.y = y
        self.lambda_ = lambda_

    def initialize(self):
        """Действия перед запуском оптимизации (по умолчанию - ничего)."""

    @abc.abstractmethod
    def compute_cost(self, theta: np.ndarray) -> float:
        pass

    @abc.abstractmethod
    def compute_gradient(self, theta: np.ndarray) -> np.ndarray:
        pass

    def _regularize_cost(self, j: float, theta: np.ndarray) -> float:
        if self.lambda_ == 0:
            return j
        m = self.X.shape[0]
        return j + self.lambda_ / (2.0 * m) * np.sum(theta[1:] ** 2)

    def _regularize_gradient(self, gradient: np.ndarray, theta: np.ndarray) -> np.ndarray:
        if self.lambda_ == 0:
            return gradient
        m = self.X.shape[0]
        gradient = gradient.copy()
        gradient[1:] += self.lambda_ / m * theta[1:]
        return gradient


class LinearCostFunction(CostFunction):
    """
    Среднеквадратичная стоимость линейной регрессии.

        J(θ) = 1/(2m) · Σ (Xθ - y)²
        ∇J   = 1/m · X^T (Xθ - y)
    """

    def compute_cost(self, theta):
        m = self.X.shape[0]
        residual = self.X @ theta - self.y
        j = 1.0 / (2.0 * m) * np.sum(residual ** 2)
        return float(self._regularize_cost(j, theta))

    def compute_gradient(self, theta):
        m = self.X.shape[0]
        residual = self.X @ theta - self.y
        gradient = 1.0 / m * (self.X.T @ residual)
        return self._regularize_gradient(gradient, theta)


class LogisticCostFunction(CostFunction):
    """
    Кросс-энтропия логистической регрессии, y ∈ {0, 1}.

        z    = Xθ,  h = f(z)
        J(θ) = -1/m · [y·log(h) + (1 - y)·log(1 - h)]
        ∇J   = 1/m · X^T [(h - y) · f'(z) / (h·(1 - h))]

    Для сигмоиды f'(z) = h·(1 - h) и градиент сводится к 1/m · X^T (h - y).
    h обрезается в [1e-15, 1 - 1e-15] одинаково в стоимости и градиенте,
    чтобы log не давал -inf на насыщенных примерах.
    """

    def __init__(self, X, y, lambda_: float = 0.0, function: Function = None):
        super().__init__(X, y, lambda_)
        self.function = function if function is not None else Logistic()

    def _hypothesis(self, z):
        return np.clip(self.function.compute(z), _H_MIN, 1.0 - _H_MIN)

    def compute_cost(self, theta):
        m = self.X.shape[0]
        h = self._hypothesis(self.X @ theta)
        j = -1.0 / m * (np.dot(self.y, np.log(h)) + np.dot(1.0 - self.y, np.log(1.0 - h)))
        return float(self._regularize_cost(j, theta))

    def compute_gradient(self, theta):
        m = self.X.shape[0]
        z = self.X @ theta
        h = self._hypothesis(z)
        dz = (h - self.y) * self.function.derivative(z) / (h * (1.0 - h))
        gradient = 1.0 / m * (self.X.T @ dz)
        return self._regularize_gradient(gradient, theta)
