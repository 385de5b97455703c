"""
Train the same stream with one and with several partial models per batch and
compare both against scikit-learn's batch decision tree.
"""

import numpy as np
import pandas as pd
from time import perf_counter
from sklearn.metrics import accuracy_score
from sklearn.model_selection import train_test_split
from sklearn.tree import DecisionTreeClassifier

from vfdtpy import HoeffdingTreeClassifier

rng = np.random.default_rng(42)
n = 20000
df = pd.DataFrame({
    "x0": rng.normal(size=n),
    "x1": rng.normal(size=n),
    "color": rng.choice(["red", "green", "blue"], size=n),
})
df["target"] = ((df["x0"] + 0.5 * df["x1"] > 0) ^ (df["color"] == "blue")).astype(int)

feats = ["x0", "x1", "color"]
X = df[feats].values.astype(object)
y = df["target"].values
X_train, X_test, y_train, y_test = train_test_split(X, y, test_size=0.25, random_state=0)

results = []
for n_partitions in (1, 4):
    clf = HoeffdingTreeClassifier(grace_period=200, batch_size=256, n_partitions=n_partitions,
                                  feature_names=feats, categorical_features=["color"])
    t0 = perf_counter()
    clf.fit(X_train, y_train)
    results.append({
        "model": f"Hoeffding tree ({n_partitions} partitions)",
        "fit_s": perf_counter() - t0,
        "accuracy": accuracy_score(y_test, clf.predict(X_test)),
        "nodes": clf.model_.n_nodes(),
    })

# scikit-learn needs numeric input
X_num = pd.get_dummies(df[feats], columns=["color"]).values.astype(float)
Xn_train, Xn_test, _, _ = train_test_split(X_num, y, test_size=0.25, random_state=0)
dt = DecisionTreeClassifier(min_samples_leaf=20, random_state=0)
t0 = perf_counter()
dt.fit(Xn_train, y_train)
results.append({
    "model": "sklearn DecisionTree",
    "fit_s": perf_counter() - t0,
    "accuracy": accuracy_score(y_test, dt.predict(Xn_test)),
    "nodes": dt.tree_.node_count,
})

print(pd.DataFrame(results).to_string(index=False))
