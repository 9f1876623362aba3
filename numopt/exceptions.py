"""
Ошибки и предупреждения numopt.

- Неверная форма данных и гиперпараметры: исключение сразу, до вычислений
- Исчерпан бюджет итераций: не ошибка, только warning + флаг converged=False
"""


class InvalidInputShapeError(ValueError):
    """X не двумерная или число строк X не совпадает с длиной y."""


class InvalidHyperparameterError(ValueError):
    """Гиперпараметр вне допустимого диапазона (C <= 0, epsilon <= 0, ...)."""


class NonConvergenceWarning(RuntimeWarning):
    """Бюджет итераций исчерпан до выполнения критерия сходимости."""


def check_shapes(X, y):
    """Проверка согласованности матрицы признаков и вектора меток."""
    if X.ndim != 2:
        raise InvalidInputShapeError(f"X должна быть двумерной, получено ndim={X.ndim}")
    if y.ndim != 1:
        raise InvalidInputShapeError(f"y должен быть одномерным, получено ndim={y.ndim}")
    if X.shape[0] != y.shape[0]:
        raise InvalidInputShapeError(
            f"Число строк X ({X.shape[0]}) не совпадает с длиной y ({y.shape[0]})"
        )


def check_positive(name, value):
    if not value > 0:
        raise InvalidHyperparameterError(f"{name} должно быть > 0, получено {value}")
