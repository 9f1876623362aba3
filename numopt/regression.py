"""
Линейная и логистическая регрессия поверх Optimizer.

Generator обучает, Model хранит снимок (θ, параметры нормализации):
    X -> z-score (опционально) -> [1 | X] -> θ

Стартовое θ случайное (равномерно в [0, 1)), воспроизводимо через seed.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .cost import LinearCostFunction, LogisticCostFunction
from .exceptions import InvalidHyperparameterError, check_shapes
from .functions import Function, Logistic
from .optimizers import Optimizer, OptimizerResult, UpdateRule, check_hyperparameters

# Порог нулевой дисперсии признака при нормализации
DEFAULT_EPSILON = 1e-8


def add_intercept(X: np.ndarray) -> np.ndarray:
    """Добавляет столбец единиц слева: [1 | X]."""
    return np.hstack([np.ones((X.shape[0], 1)), X])


def fit_normalizer(X: np.ndarray):
    """Среднее и стандартное отклонение по столбцам; std < ε заменяется на 1."""
    mean = X.mean(axis=0)
    std = X.std(axis=0)
    std = np.where(std < DEFAULT_EPSILON, 1.0, std)
    return mean, std


@dataclass
class RegressionModel:
    """Общая часть моделей: θ и параметры нормализации."""
    theta: np.ndarray
    mean: Optional[np.ndarray] = None
    std: Optional[np.ndarray] = None

    @property
    def normalize_features(self) -> bool:
        return self.mean is not None

    def _design_matrix(self, X) -> np.ndarray:
        X = np.atleast_2d(np.asarray(X, dtype=np.float64))
        if self.normalize_features:
            X = (X - self.mean) / self.std
        return add_intercept(X)

    def linear_response(self, X) -> np.ndarray:
        """Xθ с учётом нормализации и свободного члена."""
        return self._design_matrix(X) @ self.theta


class LinearRegressionModel(RegressionModel):
    """Линейная регрессия: ŷ = [1 | X]θ"""

    def predict(self, X) -> np.ndarray:
        return self.linear_response(X)


@dataclass
class LogisticRegressionModel(RegressionModel):
    """Логистическая регрессия: p = f([1 | X]θ), класс 1 при p >= 0.5"""
    function: Function = None

    def __post_init__(self):
        if self.function is None:
            self.function = Logistic()

    def predict_proba(self, X) -> np.ndarray:
        return self.function.compute(self.linear_response(X))

    def predict(self, X) -> np.ndarray:
        return np.where(self.predict_proba(X) >= 0.5, 1.0, 0.0)


class _RegressionGenerator:
    """Общий цикл обучения: нормализация, intercept, случайное θ, Optimizer."""

    def __init__(
        self,
        lambda_: float = 1.0,
        learning_rate: float = 0.01,
        max_iterations: int = 500,
        tolerance: float = 1e-4,
        normalize_features: bool = True,
        rule: Optional[UpdateRule] = None,
        seed: Optional[int] = None,
        verbose: bool = False,
    ):
        """
        Args:
            lambda_: Коэффициент L2-регуляризации
            learning_rate: Шаг градиентного спуска
            max_iterations: Бюджет итераций
            tolerance: Минимальное относительное улучшение стоимости
            normalize_features: z-score нормализация признаков
            rule: Правило обновления (default: GradientDescent)
            seed: Seed для стартового θ
            verbose: Выводить прогресс
        """
        check_hyperparameters(learning_rate, max_iterations, tolerance)
        if lambda_ < 0.0:
            raise InvalidHyperparameterError(f"lambda_ должно быть >= 0, получено {lambda_}")

        self.lambda_ = lambda_
        self.learning_rate = learning_rate
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.normalize_features = normalize_features
        self.rule = rule
        self.seed = seed
        self.verbose = verbose
        self.result: Optional[OptimizerResult] = None

    def _prepare(self, X, y):
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        check_shapes(X, y)

        mean = std = None
        if self.normalize_features:
            mean, std = fit_normalizer(X)
            X = (X - mean) / std

        return add_intercept(X), y, mean, std

    def _optimize(self, cost_function) -> np.ndarray:
        n_params = cost_function.X.shape[1]
        theta = np.random.default_rng(self.seed).random(n_params)

        optimizer = Optimizer(
            theta,
            max_iterations=self.max_iterations,
            learning_rate=self.learning_rate,
            rule=self.rule,
            tolerance=self.tolerance,
            verbose=self.verbose,
        )
        self.result = optimizer.run(cost_function)
        return self.result.theta


class LinearRegressionGenerator(_RegressionGenerator):
    """Обучение линейной регрессии (половина MSE + L2)."""

    def generate(self, X, y) -> LinearRegressionModel:
        X, y, mean, std = self._prepare(X, y)
        theta = self._optimize(LinearCostFunction(X, y, self.lambda_))
        return LinearRegressionModel(theta=theta, mean=mean, std=std)


class LogisticRegressionGenerator(_RegressionGenerator):
    """
    Обучение логистической регрессии (кросс-энтропия + L2).

    Метки приводятся к {0, 1}: y == 1 -> 1, иначе 0.
    """

    def __init__(self, lambda_: float = 1.0, learning_rate: float = 0.3,
                 function: Function = None, **kwargs):
        super().__init__(lambda_=lambda_, learning_rate=learning_rate, **kwargs)
        self.function = function if function is not None else Logistic()

    def generate(self, X, y) -> LogisticRegressionModel:
        X, y, mean, std = self._prepare(X, y)
        y = np.where(y == 1.0, 1.0, 0.0)
        theta = self._optimize(LogisticCostFunction(X, y, self.lambda_, self.function))
        return LogisticRegressionModel(theta=theta, mean=mean, std=std, function=self.function)
