"""
Градиентный спуск: взаимозаменяемые правила обновления θ и общий цикл.

UpdateRule - стратегия одного шага:
    update(state)                  - продолжать ли итерации (early stopping)
    update_cost(cost, state)       - J(θ)
    update_gradient(cost, state)   - ∇J(θ), аналитически
    update_theta(state)            - новое θ; state не изменяется

Optimizer владеет OptimizerState и применяет результат правила.

Формулы:
    GradientDescent:  θ' = θ - lr·g
    MomentumDescent:  v = μ·v_prev - lr·g;  θ' = θ + v
    NAGDescent:       v = μ·v_prev - lr·g;  θ' = θ + μ·v - lr·g

Reference: Sutskever et al. (2013). "On the importance of initialization and
momentum in deep learning"
"""

import abc
import warnings
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from tqdm.auto import tqdm

from .cost import CostFunction
from .exceptions import InvalidHyperparameterError, NonConvergenceWarning


@dataclass
class OptimizerState:
    """Изменяемый контекст одного запуска оптимизации."""
    theta: np.ndarray            # Текущие параметры
    gradient: np.ndarray         # Градиент в последней вычисленной точке
    learning_rate: float         # Шаг обучения
    cost: float = np.inf         # Стоимость в последней вычисленной точке
    iteration: int = 0           # Число выполненных шагов
    max_iterations: int = 400    # Бюджет итераций
    tolerance: float = 1e-4      # Минимальное относительное улучшение стоимости
    cost_history: List[float] = field(default_factory=list)
    best_theta: Optional[np.ndarray] = None
    best_cost: float = np.inf
    converged: bool = False      # Остановка по tolerance, а не по бюджету


@dataclass
class OptimizerResult:
    """Результат работы градиентного спуска."""
    theta: np.ndarray            # Итоговые параметры
    cost: float                  # Стоимость в итоговой точке
    n_iterations: int            # Количество итераций
    converged: bool              # Остановка по критерию, а не по бюджету
    cost_history: List[float]    # Стоимость на каждом шаге


# =============================================================================
# Правила обновления
# =============================================================================

class UpdateRule(abc.ABC):
    """Стратегия шага градиентного спуска."""

    def update(self, state: OptimizerState) -> bool:
        """
        Возвращает False, если цикл нужно остановить.

        Остановка:
        - относительное изменение стоимости за последний шаг < tolerance
          (state.converged = True)
        - исчерпан бюджет: iteration >= max_iterations
        """
        history = state.cost_history
        if len(history) >= 2:
            previous, last = history[-2], history[-1]
            if abs(previous - last) < state.tolerance * max(abs(previous), 1.0):
                state.converged = True
                return False

        if state.iteration >= state.max_iterations:
            return False

        return True

    def update_cost(self, cost_function: CostFunction, state: OptimizerState) -> float:
        return cost_function.compute_cost(state.theta)

    def update_gradient(self, cost_function: CostFunction, state: OptimizerState) -> np.ndarray:
        return cost_function.compute_gradient(state.theta)

    @abc.abstractmethod
    def update_theta(self, state: OptimizerState) -> np.ndarray:
        pass

    def reset(self):
        """Сброс внутренней памяти правила (скорости) перед новым запуском."""

    def get_config(self) -> dict:
        """Параметры правила для логирования."""
        return {"update_rule": type(self).__name__}


class GradientDescent(UpdateRule):
    """Обычный градиентный спуск: θ' = θ - lr·g"""

    def update_theta(self, state):
        return state.theta - state.learning_rate * state.gradient


class _VelocityRule(UpdateRule):
    """Общая часть правил с накопленной скоростью v."""

    def __init__(self, momentum: float = 0.9):
        """
        Args:
            momentum: Коэффициент инерции μ (default: 0.9)
        """
        if not 0.0 <= momentum < 1.0:
            raise InvalidHyperparameterError(f"Invalid momentum value: {momentum}")
        self.momentum = momentum
        self.velocity: Optional[np.ndarray] = None

    def reset(self):
        self.velocity = None

    def _next_velocity(self, state) -> np.ndarray:
        # На первом шаге v_prev = θ_0 (стартовая точка, масштабированная μ)
        previous = state.theta if self.velocity is None else self.velocity
        self.velocity = self.momentum * previous - state.learning_rate * state.gradient
        return self.velocity

    def get_config(self):
        config = super().get_config()
        config["momentum"] = self.momentum
        return config


class MomentumDescent(_VelocityRule):
    """
    Градиентный спуск с моментом.

    Формулы:
        v_t = μ·v_{t-1} - lr·g_t
        θ_t = θ_{t-1} + v_t
    """

    def update_theta(self, state):
        v = self._next_velocity(state)
        return state.theta + v


class NAGDescent(_VelocityRule):
    """
    Nesterov Accelerated Gradient.

    Формулы:
        v_t = μ·v_{t-1} - lr·g_t
        θ_t = θ_{t-1} + μ·v_t - lr·g_t

    Градиент g_t берётся в текущей точке θ_{t-1} и используется дважды;
    повторного вычисления в точке "заглядывания" нет.
    """

    def update_theta(self, state):
        v = self._next_velocity(state)
        return state.theta + self.momentum * v - state.learning_rate * state.gradient


# =============================================================================
# Основной цикл
# =============================================================================

def check_hyperparameters(learning_rate: float, max_iterations: int, tolerance: float):
    """Проверяет параметры цикла градиентного спуска."""
    if not learning_rate > 0.0:
        raise InvalidHyperparameterError(f"Invalid learning rate: {learning_rate}")
    if max_iterations < 1:
        raise InvalidHyperparameterError(f"Invalid max_iterations: {max_iterations}")
    if tolerance < 0.0:
        raise InvalidHyperparameterError(f"Invalid tolerance: {tolerance}")


class Optimizer:
    """
    Цикл градиентного спуска: стоимость -> градиент -> новое θ.

    Правило обновления выбирается при создании и не знает о цикле; состояние
    OptimizerState принадлежит только этому объекту.
    """

    def __init__(
        self,
        theta: np.ndarray,
        max_iterations: int = 400,
        learning_rate: float = 1.0,
        rule: Optional[UpdateRule] = None,
        tolerance: float = 1e-4,
        verbose: bool = False,
    ):
        """
        Args:
            theta: Начальные параметры
            max_iterations: Бюджет итераций (default: 400)
            learning_rate: Шаг обучения (default: 1.0)
            rule: Правило обновления (default: GradientDescent)
            tolerance: Минимальное относительное улучшение стоимости (default: 1e-4)
            verbose: Выводить прогресс
        """
        check_hyperparameters(learning_rate, max_iterations, tolerance)

        theta = np.array(theta, dtype=np.float64)
        self.rule = rule if rule is not None else GradientDescent()
        self.verbose = verbose
        self.completed = False
        self.state = OptimizerState(
            theta=theta,
            gradient=np.zeros_like(theta),
            learning_rate=learning_rate,
            max_iterations=max_iterations,
            tolerance=tolerance,
        )

    def step(self, cost_function: CostFunction):
        """Один шаг: стоимость и градиент в θ, затем θ <- update_theta."""
        state = self.state
        state.iteration += 1

        state.cost = self.rule.update_cost(cost_function, state)
        state.cost_history.append(state.cost)

        if state.cost < state.best_cost:
            state.best_cost = state.cost
            state.best_theta = state.theta.copy()

        state.gradient = self.rule.update_gradient(cost_function, state)
        state.theta = self.rule.update_theta(state)

    def run(self, cost_function: CostFunction) -> OptimizerResult:
        """
        Запускает оптимизацию до остановки правилом или исчерпания бюджета.

        Args:
            cost_function: Дифференцируемая функция стоимости

        Returns:
            OptimizerResult
        """
        state = self.state
        cost_function.initialize()
        self.rule.reset()

        if self.verbose:
            print(f"Gradient descent started: rule={type(self.rule).__name__}, "
                  f"lr={state.learning_rate}, max_iterations={state.max_iterations}")

        progress = tqdm(total=state.max_iterations, desc="Gradient descent") if self.verbose else None

        while self.rule.update(state):
            self.step(cost_function)
            if progress is not None:
                progress.update(1)
                progress.set_postfix(cost=f"{state.cost:.6f}")

        if progress is not None:
            progress.close()

        self.completed = True
        converged = state.converged
        final_cost = self.rule.update_cost(cost_function, state)

        if not converged:
            warnings.warn(
                f"Gradient descent did not converge in {state.max_iterations} iterations "
                f"(cost={final_cost:.6f})",
                NonConvergenceWarning,
            )

        if self.verbose:
            print(f"Gradient descent finished: {state.iteration} iterations, "
                  f"cost={final_cost:.6f}, converged={converged}")

        return OptimizerResult(
            theta=state.theta.copy(),
            cost=final_cost,
            n_iterations=state.iteration,
            converged=converged,
            cost_history=list(state.cost_history),
        )

    def get_state_dict_for_logging(self) -> dict:
        """Возвращает информацию о состоянии для логирования."""
        info = {
            "optimizer": "Optimizer (numopt)",
            "learning_rate": self.state.learning_rate,
            "max_iterations": self.state.max_iterations,
            "tolerance": self.state.tolerance,
            "iteration": self.state.iteration,
        }
        info.update(self.rule.get_config())
        return info
