"""
Тесты ядер и дифференцируемых функций.

Проверяет:
1. Симметрию и корректность матрицы Грама
2. Согласованность gram / compute / project (в т.ч. масштаб λ логистического ядра)
3. SteepLogistic: f(0) = 0.5, область значений (0, 1), производная
"""

import numpy as np
from scipy.special import expit

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from numopt import (
    LinearKernel,
    LogisticKernel,
    Logistic,
    SteepLogistic,
    InvalidInputShapeError,
    InvalidHyperparameterError,
)


def make_data(n_samples=30, n_features=4, seed=0):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(n_samples, n_features))


# =============================================================================
# Ядра
# =============================================================================

def test_linear_gram_matches_inner_products():
    """K = X @ X.T, симметрия и k(x, x) >= 0."""
    print("\n" + "="*60)
    print("Test: Linear Gram Matrix")
    print("="*60)

    X = make_data()
    kernel = LinearKernel()
    K = kernel.gram(X)

    print(f"  Gram shape: {K.shape}")
    assert K.shape == (30, 30)
    assert np.array_equal(K, K.T), "Gram matrix must be exactly symmetric"
    assert np.allclose(K, X @ X.T)
    assert np.all(np.diag(K) >= 0.0)
    assert kernel.is_linear

    print("\n[PASS] Linear Gram test passed!")


def test_linear_compute_and_project():
    """compute(x1, x2) = x1·x2, project(X, x)[i] = X[i]·x."""
    print("\n" + "="*60)
    print("Test: Linear compute / project")
    print("="*60)

    X = make_data(n_samples=10, n_features=3, seed=1)
    kernel = LinearKernel()

    for i in range(3):
        for j in range(3):
            assert np.isclose(kernel.compute(X[i], X[j]), np.dot(X[i], X[j]))
            assert np.isclose(kernel.compute(X[i], X[j]), kernel.compute(X[j], X[i]))

    x = np.array([0.5, -1.0, 2.0])
    row = kernel.project(X, x)
    assert row.shape == (10,)
    assert np.allclose(row, X @ x)

    print("\n[PASS] Linear compute/project test passed!")


def test_logistic_kernel_paths_agree():
    """gram, compute и project логистического ядра используют один и тот же λ."""
    print("\n" + "="*60)
    print("Test: Logistic Kernel consistency")
    print("="*60)

    X = make_data(n_samples=12, n_features=3, seed=2)
    kernel = LogisticKernel(lambda_=0.5)
    K = kernel.gram(X)

    print(f"  {kernel!r}")
    assert not kernel.is_linear
    assert np.array_equal(K, K.T)
    assert np.allclose(K, expit(0.5 * (X @ X.T)))

    for i in range(4):
        for j in range(4):
            assert np.isclose(kernel.compute(X[i], X[j]), K[i, j])
        assert np.allclose(kernel.project(X, X[i]), K[:, i])

    # Значения ядра лежат в (0, 1)
    assert np.all(K > 0.0) and np.all(K < 1.0)

    print("\n[PASS] Logistic kernel consistency test passed!")


def test_logistic_kernel_custom_function():
    """Сжимающая функция заменяется, например на SteepLogistic."""
    X = make_data(n_samples=5, n_features=2, seed=3)
    kernel = LogisticKernel(lambda_=2.0, function=SteepLogistic())
    K = kernel.gram(X)
    assert np.allclose(K, expit(np.pi * 2.0 * (X @ X.T)))


def test_kernel_input_validation():
    """Неверная размерность X и неположительный λ."""
    print("\n" + "="*60)
    print("Test: Kernel input validation")
    print("="*60)

    try:
        LinearKernel().gram(np.ones(5))
        assert False, "Should raise InvalidInputShapeError for 1-D X"
    except InvalidInputShapeError as e:
        print(f"  Correctly rejected 1-D X: {e}")

    for bad_lambda in [0.0, -1.0]:
        try:
            LogisticKernel(lambda_=bad_lambda)
            assert False, f"Should raise InvalidHyperparameterError for lambda_={bad_lambda}"
        except InvalidHyperparameterError as e:
            print(f"  Correctly rejected lambda_={bad_lambda}: {e}")

    print("\n[PASS] Kernel validation test passed!")


# =============================================================================
# Функции
# =============================================================================

def test_steep_logistic_values():
    """f(0) = 0.5, f ∈ (0, 1), монотонность."""
    print("\n" + "="*60)
    print("Test: SteepLogistic values")
    print("="*60)

    f = SteepLogistic()
    assert f.compute(0.0) == 0.5
    assert isinstance(f.compute(1.0), float)

    x = np.linspace(-5.0, 5.0, 101)
    values = f.compute(x)
    print(f"  f(-5) = {values[0]:.3e}, f(5) = {values[-1]:.6f}")
    assert values.shape == x.shape
    assert np.all(values > f.minimum) and np.all(values < f.maximum)
    assert np.all(np.diff(values) > 0.0)
    assert np.isclose(f.compute(1.0), 1.0 / (1.0 + np.exp(-np.pi)))

    # Строго внутри (0, 1) и для больших по модулю аргументов
    extreme = f.compute(np.array([-1000.0, -300.0, 50.0, 1000.0]))
    assert np.all(extreme > 0.0) and np.all(extreme < 1.0)

    print("\n[PASS] SteepLogistic values test passed!")


def test_steep_logistic_derivative():
    """f'(x) = π·f(x)·(1 - f(x)) и совпадает с конечной разностью."""
    f = SteepLogistic()
    x = np.linspace(-2.0, 2.0, 41)
    c = f.compute(x)

    assert np.allclose(f.derivative(x), np.pi * c * (1.0 - c))
    assert np.isclose(f.derivative(0.0), np.pi / 4.0)

    h = 1e-6
    numeric = (f.compute(x + h) - f.compute(x - h)) / (2 * h)
    assert np.allclose(f.derivative(x), numeric, atol=1e-6)


def test_logistic_function():
    """Сигмоида: f(0) = 0.5, f' = f(1 - f), minimize - сумма значений."""
    f = Logistic()
    assert f.compute(0.0) == 0.5
    assert f.derivative(0.0) == 0.25

    x = np.array([-1.0, 0.0, 1.0])
    assert np.isclose(f.minimize(x), 1.5)
    assert np.allclose(f.compute(x) + f.compute(-x), 1.0)

    # Большие аргументы не переполняются
    assert f.compute(-1000.0) == 0.0
    assert f.compute(1000.0) == 1.0


def run_all_tests():
    """Запуск всех тестов."""
    tests = [
        ("Linear Gram", test_linear_gram_matches_inner_products),
        ("Linear compute/project", test_linear_compute_and_project),
        ("Logistic kernel consistency", test_logistic_kernel_paths_agree),
        ("Logistic kernel custom function", test_logistic_kernel_custom_function),
        ("Kernel validation", test_kernel_input_validation),
        ("SteepLogistic values", test_steep_logistic_values),
        ("SteepLogistic derivative", test_steep_logistic_derivative),
        ("Logistic function", test_logistic_function),
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
