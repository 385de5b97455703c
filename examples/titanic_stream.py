import logging

import pandas as pd
from time import perf_counter
from vfdtpy import HoeffdingTreeClassifier

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

df = pd.read_csv("titanic.csv")
feats = ["pclass","sex","age","sibsp","parch","fare","embarked"]

Xdf = df[feats].copy()
Xdf["pclass"]   = Xdf["pclass"].astype(str)
Xdf["sex"]      = Xdf["sex"].astype(str)
Xdf["embarked"] = Xdf["embarked"].astype(str)

X = Xdf.values.astype(object)
y = df["survived"].astype(int).values

clf = HoeffdingTreeClassifier(
    grace_period=50, split_confidence=1e-4, tie_threshold=0.05,
    leaf_prediction="nba", batch_size=50,
    feature_names=feats,
    categorical_features=["pclass","sex","embarked"],
)

# prequential evaluation: test on each chunk before learning from it
chunk = 100
correct = seen = 0
t0 = perf_counter()
for start in range(0, len(X), chunk):
    Xc, yc = X[start:start+chunk], y[start:start+chunk]
    if clf.model_ is not None:
        correct += int((clf.predict(Xc) == yc).sum())
        seen += len(yc)
    clf.partial_fit(Xc, yc, classes=[0, 1])
print(f"stream: {perf_counter()-t0:.3f} s, prequential accuracy {correct/max(seen, 1):.3f}")

clf.print_tree(class_names=["No","Yes"])
for rule in clf.export_rules(class_names=["No","Yes"]):
    print(rule)
try:
    clf.export_graphviz("titanic_hoeffding_tree", class_names=["No","Yes"], format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")
