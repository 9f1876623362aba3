from .exceptions import (
    InvalidInputShapeError,
    InvalidHyperparameterError,
    NonConvergenceWarning,
)

from .functions import Function, Logistic, SteepLogistic

from .kernels import Kernel, LinearKernel, LogisticKernel

from .cost import CostFunction, LinearCostFunction, LogisticCostFunction

from .optimizers import (
    OptimizerState,
    OptimizerResult,
    UpdateRule,
    GradientDescent,
    MomentumDescent,
    NAGDescent,
    Optimizer,
)

from .selection import (
    CONVERGED,
    WorkingSetSelector,
    WorkingSetSelection3,
    MaximalViolatingPairSelection,
)

from .smo_solver import (
    DualState,
    SMOResult,
    DualSolver,
    SVMModel,
    SVMGenerator,
    solve_svm_dual,
)

from .regression import (
    DEFAULT_EPSILON,
    LinearRegressionGenerator,
    LinearRegressionModel,
    LogisticRegressionGenerator,
    LogisticRegressionModel,
)

from .metrics import Score, score_predictions

__all__ = [
    # Errors
    "InvalidInputShapeError",
    "InvalidHyperparameterError",
    "NonConvergenceWarning",
    # Functions
    "Function",
    "Logistic",
    "SteepLogistic",
    # Kernels
    "Kernel",
    "LinearKernel",
    "LogisticKernel",
    # Cost functions
    "CostFunction",
    "LinearCostFunction",
    "LogisticCostFunction",
    # Gradient descent
    "OptimizerState",
    "OptimizerResult",
    "UpdateRule",
    "GradientDescent",
    "MomentumDescent",
    "NAGDescent",
    "Optimizer",
    # Working set selection
    "CONVERGED",
    "WorkingSetSelector",
    "WorkingSetSelection3",
    "MaximalViolatingPairSelection",
    # SMO
    "DualState",
    "SMOResult",
    "DualSolver",
    "SVMModel",
    "SVMGenerator",
    "solve_svm_dual",
    # Regression
    "DEFAULT_EPSILON",
    "LinearRegressionGenerator",
    "LinearRegressionModel",
    "LogisticRegressionGenerator",
    "LogisticRegressionModel",
    # Metrics
    "Score",
    "score_predictions",
]
