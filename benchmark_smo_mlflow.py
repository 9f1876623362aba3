import os
import sys
import time
import numpy as np
import mlflow
import warnings
from sklearn.datasets import make_classification, make_blobs
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import f1_score, accuracy_score, classification_report
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from numopt import (
    SVMGenerator,
    LinearKernel,
    LogisticKernel,
    WorkingSetSelection3,
    MaximalViolatingPairSelection,
    LogisticRegressionGenerator,
    GradientDescent,
    MomentumDescent,
    NAGDescent,
    NonConvergenceWarning,
    score_predictions,
)

# --- КОНФИГУРАЦИЯ ---
CONFIG = {
    # Синтетические данные
    "n_samples": 2000,
    "n_features": 20,
    "n_informative": 10,
    "class_sep": 1.0,
    "test_size": 0.25,
    "random_state": 42,
    "use_scaler": True,

    # SMO параметры
    "C": 1.0,
    "epsilon": 1e-3,
    "max_iter": 100000,
    "logistic_kernel_lambda": 0.05,

    # Градиентный спуск (логистическая регрессия)
    "gd_learning_rate": 0.3,
    "gd_max_iterations": 500,
    "gd_lambda": 1.0,
    "gd_momentum": 0.9,

    # Baseline sklearn
    "run_sklearn_baseline": True,

    # MLFLOW Settings
    "mlflow_tracking_uri": "http://localhost:5000",
    "experiment_name": "numopt_SMO_Benchmark",
    "s3_endpoint": "http://localhost:9000",
    "s3_access_key": "minio_root",
    "s3_secret_key": "minio_password"
}

# Наборы данных для сравнения
DATASETS = {
    "classification_20d": lambda: make_classification(
        n_samples=CONFIG["n_samples"], n_features=CONFIG["n_features"],
        n_informative=CONFIG["n_informative"], class_sep=CONFIG["class_sep"],
        random_state=CONFIG["random_state"]),
    "blobs_2d": lambda: make_blobs(
        n_samples=CONFIG["n_samples"], centers=2, cluster_std=2.0,
        random_state=CONFIG["random_state"]),
}

os.environ["MLFLOW_TRACKING_URI"] = CONFIG["mlflow_tracking_uri"]
os.environ["MLFLOW_S3_ENDPOINT_URL"] = CONFIG["s3_endpoint"]
os.environ["AWS_ACCESS_KEY_ID"] = CONFIG["s3_access_key"]
os.environ["AWS_SECRET_ACCESS_KEY"] = CONFIG["s3_secret_key"]
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["MLFLOW_S3_IGNORE_TLS"] = "true"


def load_dataset(name):
    """Генерирует данные и делит на train/test, метки в {-1, +1}."""
    X, y = DATASETS[name]()
    y = np.where(y == 1, 1.0, -1.0)
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=CONFIG["test_size"], random_state=CONFIG["random_state"], stratify=y)

    if CONFIG["use_scaler"]:
        scaler = StandardScaler()
        X_train = scaler.fit_transform(X_train)
        X_test = scaler.transform(X_test)

    return X_train, X_test, y_train, y_test


def classification_metrics(y_test, y_pred):
    score = score_predictions(y_pred, y_test, truth_label=1.0)
    return {
        "accuracy": score.accuracy,
        "precision": score.precision,
        "recall": score.recall,
        "f1": score.f1,
        "fallout": score.fallout,
        "rmse": score.rmse,
    }


def train_smo_variants(X_train, y_train, X_test, y_test, dataset_name):
    """Обучает SVM через DualSolver с разными ядрами и стратегиями выбора пары."""
    print(f"\n--- Training SMO variants on {dataset_name} ---")

    variants = [
        ("Linear_WSS3", LinearKernel(), WorkingSetSelection3(seed=CONFIG["random_state"])),
        ("Linear_MVP", LinearKernel(), MaximalViolatingPairSelection(seed=CONFIG["random_state"])),
        ("Logistic_WSS3", LogisticKernel(lambda_=CONFIG["logistic_kernel_lambda"]),
         WorkingSetSelection3(seed=CONFIG["random_state"])),
    ]

    results = {}

    for variant_name, kernel, selection in variants:
        print(f"\n  Training {variant_name}...")
        with mlflow.start_run(run_name=f"SMO_{variant_name}_on_{dataset_name}"):
            mlflow.log_param("dataset", dataset_name)
            mlflow.log_param("kernel", repr(kernel))
            mlflow.log_param("selection", type(selection).__name__)
            mlflow.log_param("C", CONFIG["C"])
            mlflow.log_param("epsilon", CONFIG["epsilon"])
            mlflow.log_param("max_iter", CONFIG["max_iter"])
            mlflow.log_param("use_scaler", CONFIG["use_scaler"])

            generator = SVMGenerator(
                C=CONFIG["C"], epsilon=CONFIG["epsilon"], max_iter=CONFIG["max_iter"],
                kernel=kernel, selection=selection, verbose=True
            )

            start = time.time()
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", NonConvergenceWarning)
                model = generator.generate(X_train, y_train)
            train_time = time.time() - start

            for w in caught:
                print(f"    Warning: {w.message}")

            result = generator.result
            y_pred = model.predict(X_test)

            metrics = classification_metrics(y_test, y_pred)
            metrics.update({
                "train_time_sec": train_time,
                "n_iterations": result.n_iterations,
                "n_support_vectors": result.n_support_vectors,
                "objective_value": result.objective_value,
                "bias": result.b,
                "converged": float(result.converged),
            })

            print(f"    {variant_name}: acc={metrics['accuracy']:.4f}, f1={metrics['f1']:.4f}, "
                  f"SV={result.n_support_vectors}, iters={result.n_iterations}, time={train_time:.2f}s")
            mlflow.log_metrics(metrics)

            report = classification_report(y_test, y_pred, zero_division=0)
            report_filename = f"smo_{variant_name}_report.txt"
            with open(report_filename, "w", encoding="utf-8") as f:
                f.write(f"Dataset: {dataset_name}\nVariant: {variant_name}\n\n")
                f.write(report)
            mlflow.log_artifact(report_filename)

            results[f"SMO_{variant_name}"] = metrics

    return results


def train_gradient_descent_variants(X_train, y_train, X_test, y_test, dataset_name):
    """Логистическая регрессия с разными правилами обновления."""
    print(f"\n--- Training gradient descent variants on {dataset_name} ---")

    rules = [
        ("GD", GradientDescent()),
        ("Momentum", MomentumDescent(momentum=CONFIG["gd_momentum"])),
        ("NAG", NAGDescent(momentum=CONFIG["gd_momentum"])),
    ]

    results = {}
    y_test01 = np.where(y_test > 0, 1.0, 0.0)

    for rule_name, rule in rules:
        with mlflow.start_run(run_name=f"LogReg_{rule_name}_on_{dataset_name}"):
            mlflow.log_param("dataset", dataset_name)
            mlflow.log_param("learning_rate", CONFIG["gd_learning_rate"])
            mlflow.log_param("max_iterations", CONFIG["gd_max_iterations"])
            mlflow.log_param("lambda", CONFIG["gd_lambda"])
            for key, value in rule.get_config().items():
                mlflow.log_param(key, value)

            generator = LogisticRegressionGenerator(
                lambda_=CONFIG["gd_lambda"],
                learning_rate=CONFIG["gd_learning_rate"],
                max_iterations=CONFIG["gd_max_iterations"],
                rule=rule,
                seed=CONFIG["random_state"],
            )

            start = time.time()
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", NonConvergenceWarning)
                model = generator.generate(X_train, y_train)
            train_time = time.time() - start

            y_pred = model.predict(X_test)
            metrics = classification_metrics(y_test01, y_pred)
            metrics.update({
                "train_time_sec": train_time,
                "n_iterations": generator.result.n_iterations,
                "final_cost": generator.result.cost,
                "converged": float(generator.result.converged),
            })

            # Кривая стоимости по шагам
            for step, cost in enumerate(generator.result.cost_history):
                mlflow.log_metric("cost", cost, step=step)

            print(f"    {rule_name}: acc={metrics['accuracy']:.4f}, f1={metrics['f1']:.4f}, "
                  f"cost={metrics['final_cost']:.6f}, iters={metrics['n_iterations']}")
            mlflow.log_metrics(metrics)

            results[f"LogReg_{rule_name}"] = metrics

    return results


def train_sklearn_baselines(X_train, y_train, X_test, y_test, dataset_name):
    """sklearn SVC и LogisticRegression на тех же данных."""
    print(f"\n--- Training sklearn baselines on {dataset_name} ---")

    classifiers = [
        ("SVC_linear", SVC(kernel="linear", C=CONFIG["C"], tol=CONFIG["epsilon"])),
        ("SVC_sigmoid", SVC(kernel="sigmoid", C=CONFIG["C"], gamma=CONFIG["logistic_kernel_lambda"],
                            coef0=0.0, tol=CONFIG["epsilon"])),
        ("LogisticRegression", LogisticRegression(max_iter=1000)),
    ]

    results = {}

    for clf_name, clf in classifiers:
        print(f"\n  Training {clf_name}...")
        with mlflow.start_run(run_name=f"sklearn_{clf_name}_on_{dataset_name}"):
            mlflow.log_param("dataset", dataset_name)
            mlflow.log_param("classifier", clf_name)

            start = time.time()
            clf.fit(X_train, y_train)
            train_time = time.time() - start

            y_pred = clf.predict(X_test)
            metrics = classification_metrics(y_test, y_pred)
            metrics["train_time_sec"] = train_time
            metrics["f1_sklearn"] = f1_score(y_test, y_pred)
            metrics["accuracy_sklearn"] = accuracy_score(y_test, y_pred)
            if hasattr(clf, "n_support_"):
                metrics["n_support_vectors"] = int(np.sum(clf.n_support_))

            print(f"    {clf_name}: acc={metrics['accuracy']:.4f}, f1={metrics['f1']:.4f}, time={train_time:.2f}s")
            mlflow.log_metrics(metrics)

            results[f"sklearn_{clf_name}"] = metrics

    return results


def main():
    """
    Главная функция бенчмарка.

    Для каждого набора данных:
    1. SMO (DualSolver) с линейным и логистическим ядром, WSS3 и MVP
    2. Логистическая регрессия: GD, Momentum, NAG
    3. sklearn baseline (SVC, LogisticRegression)
    """
    mlflow.set_experiment(CONFIG["experiment_name"])
    all_results = {}

    for dataset_name in DATASETS:
        print(f"\n{'='*40}")
        print(f"Processing: {dataset_name}")
        print(f"{'='*40}")

        try:
            X_train, X_test, y_train, y_test = load_dataset(dataset_name)
            print(f"  Train: {X_train.shape}, Test: {X_test.shape}")

            for name, m in train_smo_variants(X_train, y_train, X_test, y_test, dataset_name).items():
                all_results[f"{name}_{dataset_name}"] = m

            for name, m in train_gradient_descent_variants(X_train, y_train, X_test, y_test, dataset_name).items():
                all_results[f"{name}_{dataset_name}"] = m

            if CONFIG["run_sklearn_baseline"]:
                for name, m in train_sklearn_baselines(X_train, y_train, X_test, y_test, dataset_name).items():
                    all_results[f"{name}_{dataset_name}"] = m

        except Exception as e:
            print(f"Error processing {dataset_name}: {e}")
            import traceback
            traceback.print_exc()
            continue

    print("\n" + "="*80)
    print("SUMMARY - All Results")
    print("="*80)
    print(f"{'Model':<45} {'Accuracy':<10} {'F1':<10} {'Time, s':<10}")
    print("-"*75)
    for name, m in all_results.items():
        print(f"{name:<45} {m['accuracy']:<10.4f} {m['f1']:<10.4f} {m['train_time_sec']:<10.2f}")


if __name__ == "__main__":
    main()
