"""
Sequential Minimal Optimization (SMO) солвер двойственной задачи SVM.

Алгоритм SMO основан на работах:
- Platt, J. (1998). "Sequential Minimal Optimization: A Fast Algorithm for Training SVMs"
- Fan, R.-E., Chen, P.-H., & Lin, C.-J. (2005). "Working Set Selection Using Second Order Information"

Двойственная задача:
    min_α f(α) = 1/2 Σ_i Σ_j α_i α_j y_i y_j K(x_i,x_j) - Σ_i α_i
    s.t. 0 ≤ α_i ≤ C

    G = ∇f(α) = Qα - e,  Q_ij = y_i y_j K_ij

Ограничение Σ_i α_i y_i = 0 явно не проверяется: старт α = 0 и каждое
парное обновление сохраняет y_i α_i + y_j α_j.

Цикл:
1. Матрица Грама считается один раз (Kernel.gram) и дальше только читается
2. WorkingSetSelector выбирает пару (i, j) или сообщает о сходимости
3. Аналитическое обновление пары и инкрементальное обновление G за O(n)
4. Смещение b из условий KKT после остановки

Оптимизации:
- Numba JIT: обновление пары и градиента, вычисление смещения
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from numba import njit
from tqdm.auto import tqdm

from .exceptions import (
    InvalidHyperparameterError,
    NonConvergenceWarning,
    check_positive,
    check_shapes,
)
from .kernels import Kernel, LinearKernel
from .selection import CONVERGED, WorkingSetSelection3, WorkingSetSelector


@dataclass
class DualState:
    """Изменяемое состояние двойственной задачи."""
    alpha: np.ndarray          # Множители Лагранжа, 0 ≤ α_i ≤ C
    gradient: np.ndarray       # G = Qα - e
    bias: float = 0.0          # Смещение b


@dataclass
class SMOResult:
    """Результат работы SMO солвера."""
    alpha: np.ndarray          # Множители Лагранжа
    b: float                   # Смещение (bias)
    support_indices: np.ndarray  # Индексы примеров с α_i > 0
    n_iterations: int          # Количество итераций
    n_support_vectors: int     # Количество опорных векторов
    converged: bool            # Сходимость достигнута
    objective_value: float     # Значение целевой функции (максимизация)


# =============================================================================
# Numba-оптимизированные функции SMO
# =============================================================================

@njit(fastmath=True, cache=True)
def compute_bounds(
    alpha_i: float,
    alpha_j: float,
    y_i: float,
    y_j: float,
    C: float
) -> Tuple[float, float]:
    """
    Вычисляет границы L и H для α_j при оптимизации пары (i, j).
    """
    if y_i != y_j:
        # y_i ≠ y_j: α_i - α_j = const
        L = max(0.0, alpha_j - alpha_i)
        H = min(C, C + alpha_j - alpha_i)
    else:
        # y_i = y_j: α_i + α_j = const
        L = max(0.0, alpha_i + alpha_j - C)
        H = min(C, alpha_i + alpha_j)
    return L, H


@njit(cache=True)
def optimize_pair(
    i: int,
    j: int,
    alpha: np.ndarray,
    gradient: np.ndarray,
    K: np.ndarray,
    y: np.ndarray,
    C: float,
    tau: float
) -> Tuple[float, float, bool]:
    """
    Аналитическая оптимизация пары (α_i, α_j) по матрице Грама.

    η = K_ii + K_jj - 2·K_ij  (η <= 0 -> τ)
    E_k = y_k·G_k  (ошибка без смещения, b сокращается в E_i - E_j)

    Returns:
        (new_alpha_i, new_alpha_j, changed)
    """
    alpha_i_old = alpha[i]
    alpha_j_old = alpha[j]
    y_i, y_j = y[i], y[j]

    L, H = compute_bounds(alpha_i_old, alpha_j_old, y_i, y_j, C)
    if L >= H:
        return alpha_i_old, alpha_j_old, False

    eta = K[i, i] + K[j, j] - 2.0 * K[i, j]
    if eta <= 0.0:
        eta = tau

    E_i = y_i * gradient[i]
    E_j = y_j * gradient[j]

    alpha_j_new = alpha_j_old + y_j * (E_i - E_j) / eta

    # Ограничиваем в [L, H]
    if alpha_j_new > H:
        alpha_j_new = H
    elif alpha_j_new < L:
        alpha_j_new = L

    alpha_i_new = alpha_i_old + y_i * y_j * (alpha_j_old - alpha_j_new)

    # Ограничиваем α_i (ошибки округления)
    if alpha_i_new > C:
        alpha_i_new = C
    elif alpha_i_new < 0.0:
        alpha_i_new = 0.0

    changed = alpha_i_new != alpha_i_old or alpha_j_new != alpha_j_old
    return alpha_i_new, alpha_j_new, changed


@njit(fastmath=True, cache=True)
def update_gradient(
    gradient: np.ndarray,
    K: np.ndarray,
    y: np.ndarray,
    i: int,
    j: int,
    delta_alpha_i: float,
    delta_alpha_j: float
) -> None:
    """
    Обновляет градиент после изменения α_i и α_j.

    gradient_new = gradient_old + Q[:, i]·Δα_i + Q[:, j]·Δα_j
    """
    n = len(gradient)
    y_i, y_j = y[i], y[j]

    for k in range(n):
        # Q[k, i] = y[k] * y[i] * K[k, i]
        Q_ki = y[k] * y_i * K[k, i]
        Q_kj = y[k] * y_j * K[k, j]

        gradient[k] += delta_alpha_i * Q_ki + delta_alpha_j * Q_kj


@njit(cache=True)
def compute_bias_from_gradient(
    alpha: np.ndarray,
    gradient: np.ndarray,
    y: np.ndarray,
    C: float
) -> float:
    """
    Вычисляет смещение b из KKT условий.

    ρ = среднее y_i·G_i по свободным векторам (0 < α_i < C), иначе середина
    допустимого интервала по граничным; b = -ρ.
    """
    n = len(alpha)
    sum_free = 0.0
    n_free = 0
    upper = np.inf
    lower = -np.inf

    for i in range(n):
        y_g = y[i] * gradient[i]

        if alpha[i] >= C:
            if y[i] < 0:
                upper = min(upper, y_g)
            else:
                lower = max(lower, y_g)
        elif alpha[i] <= 0.0:
            if y[i] > 0:
                upper = min(upper, y_g)
            else:
                lower = max(lower, y_g)
        else:
            # Свободный опорный вектор
            sum_free += y_g
            n_free += 1

    if n_free > 0:
        rho = sum_free / n_free
    elif upper < np.inf and lower > -np.inf:
        rho = (upper + lower) / 2.0
    elif upper < np.inf:
        rho = upper
    elif lower > -np.inf:
        rho = lower
    else:
        rho = 0.0

    return -rho


# =============================================================================
# Основной класс солвера
# =============================================================================

class DualSolver:
    """
    Решение двойственной задачи SVM методом Sequential Minimal Optimization.

    Владеет матрицей Грама и DualState; стратегия выбора пары и ядро
    задаются при создании.
    """

    def __init__(
        self,
        kernel: Optional[Kernel] = None,
        selection: Optional[WorkingSetSelector] = None,
        C: float = 1.0,
        epsilon: float = 1e-3,
        max_iter: int = 10000,
        verbose: bool = False
    ):
        """
        Инициализация солвера.

        Args:
            kernel: Ядро (default: LinearKernel)
            selection: Выбор рабочего множества (default: WorkingSetSelection3)
            C: Параметр регуляризации (верхняя граница α)
            epsilon: Допуск сходимости ε
            max_iter: Максимальное количество итераций
            verbose: Выводить отладочную информацию
        """
        check_positive("C", C)
        check_positive("epsilon", epsilon)
        if max_iter < 1:
            raise InvalidHyperparameterError(f"max_iter должно быть >= 1, получено {max_iter}")

        self.kernel = kernel if kernel is not None else LinearKernel()
        self.selection = selection if selection is not None else WorkingSetSelection3()
        self.C = float(C)
        self.epsilon = float(epsilon)
        self.max_iter = max_iter
        self.verbose = verbose

        self.K: Optional[np.ndarray] = None
        self.y: Optional[np.ndarray] = None
        self.state: Optional[DualState] = None
        self.n_iterations = 0
        self.converged = False

    def initialize(self, X: np.ndarray, y: np.ndarray):
        """
        Проверка данных, матрица Грама и стартовая точка.

        Args:
            X: Матрица признаков (n_samples, n_features)
            y: Метки классов; y > 0 -> +1, иначе -1
        """
        X = np.ascontiguousarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        check_shapes(X, y)

        # Нормализуем метки к {-1, +1}
        self.y = np.ascontiguousarray(np.where(y > 0, 1.0, -1.0))

        # Предвычисляем матрицу Грама
        self.K = self.kernel.gram(X)

        # Синхронизируем параметры SVM с функцией выбора пары
        self.selection.prepare(self.K, self.y, self.C, self.epsilon)

        n_samples = X.shape[0]
        self.state = DualState(
            alpha=np.zeros(n_samples, dtype=np.float64),
            gradient=np.zeros(n_samples, dtype=np.float64),
        )
        self.selection.initialize(self.state.alpha, self.state.gradient)

        self.n_iterations = 0
        self.converged = False

    def step(self) -> bool:
        """
        Одна итерация: выбор пары и её обновление.

        Returns:
            False, если выбор пары сообщил о сходимости (состояние не меняется)
        """
        state = self.state
        i, j = self.selection.get_working_set(state.gradient, state.alpha)

        if (i, j) == CONVERGED:
            self.converged = True
            return False

        if i == j:
            return True

        alpha_i_old = state.alpha[i]
        alpha_j_old = state.alpha[j]

        alpha_i_new, alpha_j_new, changed = optimize_pair(
            i, j, state.alpha, state.gradient, self.K, self.y, self.C, self.epsilon ** 2
        )

        if changed:
            state.alpha[i] = alpha_i_new
            state.alpha[j] = alpha_j_new
            update_gradient(
                state.gradient, self.K, self.y, i, j,
                alpha_i_new - alpha_i_old, alpha_j_new - alpha_j_old
            )

        return True

    def solve(self, X: np.ndarray, y: np.ndarray) -> SMOResult:
        """
        Решает двойственную задачу SVM методом SMO.

        Args:
            X: Матрица признаков (n_samples, n_features)
            y: Метки классов, значения {-1, +1}

        Returns:
            SMOResult с решением
        """
        self.initialize(X, y)
        n_samples = len(self.y)

        if self.verbose:
            print(f"SMO solver started: {n_samples} samples, C={self.C}, epsilon={self.epsilon}")
            print(f"  Kernel: {self.kernel!r}")
            print(f"  Selection: {type(self.selection).__name__}")

        iterator = tqdm(range(self.max_iter), desc="SMO") if self.verbose else range(self.max_iter)

        for iteration in iterator:
            if not self.step():
                break
            self.n_iterations = iteration + 1

        if not self.converged:
            # Бюджет мог закончиться ровно в точке сходимости
            self.converged = self.selection.get_working_set(
                self.state.gradient, self.state.alpha
            ) == CONVERGED

        if not self.converged:
            warnings.warn(
                f"SMO did not converge in {self.max_iter} iterations; "
                f"returning the current alpha",
                NonConvergenceWarning,
            )

        self.state.bias = compute_bias_from_gradient(
            self.state.alpha, self.state.gradient, self.y, self.C
        )

        result = self._build_result()

        if self.verbose:
            print(f"SMO finished: {result.n_iterations} iterations, "
                  f"{result.n_support_vectors} support vectors, converged={result.converged}")
            print(f"  Objective value: {result.objective_value:.6f}")
            print(f"  Bias: {result.b:.6f}")

        return result

    def objective(self) -> float:
        """
        Значение двойственной целевой функции (в форме максимизации).

        Σα - 1/2 α^T Q α = 1/2 Σ_i α_i (1 - G_i),  т.к. Qα = G + e
        """
        alpha, gradient = self.state.alpha, self.state.gradient
        return float(0.5 * np.dot(alpha, 1.0 - gradient))

    def _build_result(self) -> SMOResult:
        alpha = self.state.alpha.copy()
        support_indices = np.flatnonzero(alpha > 0.0)
        return SMOResult(
            alpha=alpha,
            b=float(self.state.bias),
            support_indices=support_indices,
            n_iterations=self.n_iterations,
            n_support_vectors=len(support_indices),
            converged=self.converged,
            objective_value=self.objective(),
        )


# =============================================================================
# Модель и генератор
# =============================================================================

@dataclass
class SVMModel:
    """Снимок обученной SVM: опорные векторы, их α и метки, смещение и ядро."""
    kernel: Kernel
    support_vectors: np.ndarray
    support_labels: np.ndarray
    alpha: np.ndarray
    bias: float
    support_indices: np.ndarray

    @property
    def w(self) -> Optional[np.ndarray]:
        """Вектор весов w = Σ α_i y_i x_i (только для линейного ядра)."""
        if not self.kernel.is_linear:
            return None
        return (self.alpha * self.support_labels) @ self.support_vectors

    def decision_function(self, X: np.ndarray) -> np.ndarray:
        """f(x) = Σ_i α_i y_i k(x_i, x) + b"""
        X = np.atleast_2d(np.asarray(X, dtype=np.float64))

        if self.kernel.is_linear:
            # Линейное ядро: проекция сворачивается в w
            return X @ self.w + self.bias

        coef = self.alpha * self.support_labels
        return np.array([
            np.dot(coef, self.kernel.project(self.support_vectors, x)) for x in X
        ]) + self.bias

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Предсказание класса {-1, +1}: sign(f(x)), f(x) = 0 -> +1"""
        return np.where(self.decision_function(X) >= 0.0, 1.0, -1.0)


class SVMGenerator:
    """Обучение SVM: нормализация меток, DualSolver, снимок SVMModel."""

    def __init__(
        self,
        C: float = 1.0,
        epsilon: float = 1e-3,
        max_iter: int = 10000,
        kernel: Optional[Kernel] = None,
        selection: Optional[WorkingSetSelector] = None,
        verbose: bool = False
    ):
        self.solver = DualSolver(
            kernel=kernel,
            selection=selection,
            C=C,
            epsilon=epsilon,
            max_iter=max_iter,
            verbose=verbose,
        )
        self.result: Optional[SMOResult] = None

    def generate(self, X: np.ndarray, y: np.ndarray) -> SVMModel:
        """
        Args:
            X: Матрица признаков (n_samples, n_features)
            y: Метки классов; y > 0 -> +1, иначе -1

        Returns:
            SVMModel только с опорными векторами
        """
        X = np.asarray(X, dtype=np.float64)
        self.result = self.solver.solve(X, y)

        if self.result.n_support_vectors == 0:
            warnings.warn("No support vectors found! Model may be degenerate.")

        idx = self.result.support_indices
        return SVMModel(
            kernel=self.solver.kernel,
            support_vectors=np.ascontiguousarray(X[idx]),
            support_labels=self.solver.y[idx].copy(),
            alpha=self.result.alpha[idx],
            bias=self.result.b,
            support_indices=idx,
        )


def solve_svm_dual(
    X: np.ndarray,
    y: np.ndarray,
    C: float = 1.0,
    epsilon: float = 1e-3,
    max_iter: int = 10000,
    selection: Optional[WorkingSetSelector] = None,
    verbose: bool = False
) -> Tuple[np.ndarray, float, np.ndarray]:
    """
    Решает двойственную задачу линейной SVM и возвращает w и смещение b.

    Args:
        X: Матрица признаков (n_samples, n_features)
        y: Метки классов (n_samples,), значения {0, 1} или {-1, +1}
        C: Параметр регуляризации
        epsilon: Допуск сходимости
        max_iter: Максимум итераций
        selection: Выбор рабочего множества (default: WorkingSetSelection3)
        verbose: Выводить прогресс

    Returns:
        w: Вектор весов (n_features,)
        b: Смещение (скаляр)
        alpha: Множители Лагранжа (n_samples,)
    """
    X = np.asarray(X, dtype=np.float64)
    y_norm = np.where(np.asarray(y) > 0, 1.0, -1.0)

    solver = DualSolver(
        kernel=LinearKernel(),
        selection=selection,
        C=C,
        epsilon=epsilon,
        max_iter=max_iter,
        verbose=verbose,
    )
    result = solver.solve(X, y_norm)

    # Вычисляем w = Σ α_i y_i x_i
    w = np.sum((result.alpha * y_norm).reshape(-1, 1) * X, axis=0)

    return w, result.b, result.alpha
