"""
Тесты линейной и логистической регрессии и метрик классификации.
"""

import warnings

import numpy as np
from sklearn.datasets import make_blobs
from sklearn.linear_model import LinearRegression
from sklearn.metrics import accuracy_score, precision_score, recall_score, f1_score

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from numopt import (
    LinearRegressionGenerator,
    LogisticRegressionGenerator,
    MomentumDescent,
    NonConvergenceWarning,
    InvalidInputShapeError,
    InvalidHyperparameterError,
    SteepLogistic,
    score_predictions,
)


def test_linear_regression_recovers_coefficients():
    """y = 3 + 2·x1 - x2 без шума: предсказания совпадают с sklearn."""
    print("\n" + "="*60)
    print("Test: Linear Regression")
    print("="*60)

    rng = np.random.default_rng(0)
    X = rng.normal(loc=5.0, scale=3.0, size=(100, 2))
    y = 3.0 + 2.0 * X[:, 0] - X[:, 1]

    generator = LinearRegressionGenerator(lambda_=0.0, learning_rate=0.1,
                                          max_iterations=5000, tolerance=1e-14, seed=0)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = generator.generate(X, y)

    reference = LinearRegression().fit(X, y)
    X_test = rng.normal(loc=5.0, scale=3.0, size=(10, 2))

    print(f"  theta = {model.theta}")
    print(f"  iterations = {generator.result.n_iterations}")
    assert np.allclose(model.predict(X), y, atol=1e-3)
    assert np.allclose(model.predict(X_test), reference.predict(X_test), atol=1e-3)
    assert model.normalize_features

    print("\n[PASS] Linear regression test passed!")


def test_linear_regression_with_momentum_without_normalization():
    """Правило обновления и нормализация настраиваются."""
    x = np.linspace(-1.0, 1.0, 41).reshape(-1, 1)
    y = 0.5 - 1.5 * x[:, 0]

    generator = LinearRegressionGenerator(lambda_=0.0, learning_rate=0.1, max_iterations=1000,
                                          tolerance=0.0, normalize_features=False,
                                          rule=MomentumDescent(momentum=0.9), seed=1)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = generator.generate(x, y)

    assert not model.normalize_features
    assert np.allclose(model.theta, [0.5, -1.5], atol=1e-6)


def test_constant_feature_is_not_scaled():
    """Столбец с нулевой дисперсией не даёт деления на ноль."""
    rng = np.random.default_rng(2)
    X = np.column_stack([rng.normal(size=50), np.full(50, 7.0)])
    y = 1.0 + X[:, 0]

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = LinearRegressionGenerator(lambda_=0.0, learning_rate=0.1, max_iterations=3000,
                                          tolerance=1e-14, seed=0).generate(X, y)

    assert np.all(np.isfinite(model.theta))
    assert model.std[1] == 1.0
    assert np.allclose(model.predict(X), y, atol=1e-3)


def test_logistic_regression_separates_blobs():
    """Логистическая регрессия на разделимых кластерах."""
    print("\n" + "="*60)
    print("Test: Logistic Regression")
    print("="*60)

    X, y = make_blobs(n_samples=200, centers=[[-3.0, -3.0], [3.0, 3.0]],
                      cluster_std=1.0, random_state=0)

    generator = LogisticRegressionGenerator(lambda_=0.1, learning_rate=0.3, max_iterations=500, seed=0)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = generator.generate(X, y)

    y_pred = model.predict(X)
    proba = model.predict_proba(X)
    acc = accuracy_score(y, y_pred)

    print(f"  theta = {model.theta}")
    print(f"  Training accuracy: {acc:.4f}")
    assert acc >= 0.99
    assert set(np.unique(y_pred)) <= {0.0, 1.0}
    assert np.all((proba > 0.0) & (proba < 1.0))
    assert model.predict(np.array([[4.0, 4.0]]))[0] == 1.0
    assert model.predict(np.array([[-4.0, -4.0]]))[0] == 0.0

    print("\n[PASS] Logistic regression test passed!")


def test_logistic_regression_binarizes_labels():
    """Метки, отличные от 1, считаются отрицательным классом."""
    X, y01 = make_blobs(n_samples=100, centers=[[-3.0, 0.0], [3.0, 0.0]],
                        cluster_std=0.5, random_state=1)
    y = np.where(y01 == 1, 1.0, -1.0)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = LogisticRegressionGenerator(lambda_=0.0, seed=0).generate(X, y)

    assert accuracy_score(y01, model.predict(X)) == 1.0


def test_logistic_regression_with_steep_logistic():
    """Сжимающая функция SteepLogistic: стоимость убывает, классы разделяются."""
    X, y = make_blobs(n_samples=100, centers=[[-3.0, 0.0], [3.0, 0.0]],
                      cluster_std=0.5, random_state=2)

    generator = LogisticRegressionGenerator(lambda_=0.1, learning_rate=0.1, max_iterations=500,
                                            function=SteepLogistic(), seed=0)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NonConvergenceWarning)
        model = generator.generate(X, y)

    history = generator.result.cost_history
    print(f"  cost: {history[0]:.4f} -> {history[-1]:.4f}")
    assert history[-1] < history[0]
    assert isinstance(model.function, SteepLogistic)
    assert accuracy_score(y, model.predict(X)) == 1.0


def test_regression_shape_validation():
    try:
        LinearRegressionGenerator().generate(np.ones((4, 2)), np.ones(3))
        assert False, "Should raise InvalidInputShapeError"
    except InvalidInputShapeError as e:
        print(f"  Correctly rejected shapes: {e}")


def test_generator_validates_hyperparameters():
    """Неверные гиперпараметры отклоняются при создании генератора."""
    bad_configs = [
        dict(learning_rate=0.0),
        dict(max_iterations=0),
        dict(tolerance=-1.0),
        dict(lambda_=-0.5),
    ]
    for generator_class in [LinearRegressionGenerator, LogisticRegressionGenerator]:
        for config in bad_configs:
            try:
                generator_class(**config)
                assert False, f"Should raise InvalidHyperparameterError for {config}"
            except InvalidHyperparameterError as e:
                print(f"  Correctly rejected {generator_class.__name__}({config}): {e}")


# =============================================================================
# Метрики
# =============================================================================

def test_score_predictions_confusion_matrix():
    """Матрица ошибок и метрики на известном примере."""
    print("\n" + "="*60)
    print("Test: Score predictions")
    print("="*60)

    actual = np.array([1, 1, 1, 0, 0, 0, 0, 1])
    predictions = np.array([1, 0, 1, 0, 1, 0, 0, 1])
    score = score_predictions(predictions, actual)

    print(f"  {score.to_dict()}")
    assert (score.true_positives, score.false_positives) == (3, 1)
    assert (score.true_negatives, score.false_negatives) == (3, 1)
    assert score.examples == 8
    assert score.accuracy == 0.75
    assert score.precision == 0.75
    assert score.recall == 0.75
    assert score.fallout == 0.25
    assert score.specificity == 0.75
    assert np.isclose(score.rmse, np.sqrt(2 / 8))

    assert np.isclose(score.accuracy, accuracy_score(actual, predictions))
    assert np.isclose(score.precision, precision_score(actual, predictions))
    assert np.isclose(score.recall, recall_score(actual, predictions))
    assert np.isclose(score.f1, f1_score(actual, predictions))

    print("\n[PASS] Score test passed!")


def test_score_with_svm_labels():
    """Метки {-1, +1}: положительный класс задаётся truth_label."""
    actual = np.array([1.0, -1.0, -1.0, 1.0])
    predictions = np.array([1.0, 1.0, -1.0, -1.0])
    score = score_predictions(predictions, actual, truth_label=1.0)

    assert (score.true_positives, score.false_positives) == (1, 1)
    assert (score.true_negatives, score.false_negatives) == (1, 1)
    assert score.f1 == 0.5


def test_score_degenerate_cases():
    """Нет положительных предсказаний: precision и f1 равны 0, без деления на ноль."""
    score = score_predictions(np.zeros(4), np.array([1, 0, 1, 0]))
    assert score.precision == 0.0
    assert score.f1 == 0.0
    assert score.fallout == 0.0

    try:
        score_predictions(np.zeros(3), np.zeros(4))
        assert False, "Should raise ValueError for length mismatch"
    except ValueError as e:
        print(f"  Correctly rejected lengths: {e}")


def run_all_tests():
    """Запуск всех тестов."""
    tests = [
        ("Linear regression", test_linear_regression_recovers_coefficients),
        ("Linear regression momentum", test_linear_regression_with_momentum_without_normalization),
        ("Constant feature", test_constant_feature_is_not_scaled),
        ("Logistic regression", test_logistic_regression_separates_blobs),
        ("Logistic labels", test_logistic_regression_binarizes_labels),
        ("Logistic SteepLogistic", test_logistic_regression_with_steep_logistic),
        ("Shape validation", test_regression_shape_validation),
        ("Generator validation", test_generator_validates_hyperparameters),
        ("Score", test_score_predictions_confusion_matrix),
        ("Score SVM labels", test_score_with_svm_labels),
        ("Score degenerate", test_score_degenerate_cases),
    ]

    passed = 0
    failed = 0
    for name, test_func in tests:
        try:
            test_func()
            passed += 1
        except AssertionError as e:
            failed += 1
            print(f"\n[FAIL] {name}: {e}")

    print(f"\nTotal: {passed} passed, {failed} failed")
    return passed, failed


if __name__ == "__main__":
    run_all_tests()
