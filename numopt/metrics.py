"""
Метрики бинарной классификации и ошибки регрессии:
- Accuracy, Precision, Recall, F1
- Specificity, Fallout (False Positive Rate)
- SSE, MSE, RMSE, MAE
"""

from dataclasses import dataclass, asdict

import numpy as np


def _safe_div(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator


def compute_sse(predictions: np.ndarray, actual: np.ndarray) -> float:
    """Сумма квадратов ошибок."""
    diff = np.asarray(predictions, dtype=np.float64) - np.asarray(actual, dtype=np.float64)
    return float(np.sum(diff ** 2))


def compute_mse(predictions: np.ndarray, actual: np.ndarray) -> float:
    return compute_sse(predictions, actual) / len(predictions)


def compute_rmse(predictions: np.ndarray, actual: np.ndarray) -> float:
    """RMSE = sqrt(1/m · Σ (p - a)²)"""
    return float(np.sqrt(compute_mse(predictions, actual)))


@dataclass
class Score:
    """Матрица ошибок и производные от неё метрики."""
    true_positives: int
    false_positives: int
    true_negatives: int
    false_negatives: int
    sse: float
    mse: float
    rmse: float
    mean_abs_error: float

    @property
    def examples(self) -> int:
        return self.true_positives + self.false_positives + self.true_negatives + self.false_negatives

    @property
    def accuracy(self) -> float:
        return _safe_div(self.true_positives + self.true_negatives, self.examples)

    @property
    def precision(self) -> float:
        return _safe_div(self.true_positives, self.true_positives + self.false_positives)

    @property
    def recall(self) -> float:
        return _safe_div(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def specificity(self) -> float:
        return _safe_div(self.true_negatives, self.true_negatives + self.false_positives)

    @property
    def fallout(self) -> float:
        """Доля отрицательных примеров, ошибочно отнесённых к положительному классу."""
        return _safe_div(self.false_positives, self.false_positives + self.true_negatives)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        if p + r == 0:
            return 0.0
        return 2 * p * r / (p + r)

    def to_dict(self) -> dict:
        """Все метрики одним словарём (для mlflow.log_metrics)."""
        result = asdict(self)
        result.update({
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "specificity": self.specificity,
            "fallout": self.fallout,
        })
        return result


def score_predictions(predictions, actual, truth_label: float = 1.0) -> Score:
    """
    Оценивает предсказания бинарного классификатора.

    Положительный класс - truth_label, всё остальное считается отрицательным.

    Args:
        predictions: Предсказанные метки (n_samples,)
        actual: Истинные метки (n_samples,)
        truth_label: Метка положительного класса (default: 1.0)

    Returns:
        Score
    """
    predictions = np.asarray(predictions, dtype=np.float64).ravel()
    actual = np.asarray(actual, dtype=np.float64).ravel()
    if predictions.shape != actual.shape:
        raise ValueError(
            f"Длины predictions ({len(predictions)}) и actual ({len(actual)}) не совпадают"
        )

    actual_pos = actual == truth_label
    predicted_pos = predictions == truth_label

    return Score(
        true_positives=int(np.sum(actual_pos & predicted_pos)),
        false_positives=int(np.sum(~actual_pos & predicted_pos)),
        true_negatives=int(np.sum(~actual_pos & ~predicted_pos)),
        false_negatives=int(np.sum(actual_pos & ~predicted_pos)),
        sse=compute_sse(predictions, actual),
        mse=compute_mse(predictions, actual),
        rmse=compute_rmse(predictions, actual),
        mean_abs_error=float(np.mean(np.abs(predictions - actual))),
    )
