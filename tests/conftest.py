import os

# Force headless backend before importing pyplot anywhere
os.environ.setdefault("MPLBACKEND", "Agg")

import matplotlib  # noqa: E402

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


@pytest.fixture
def line_list():
    return pd.DataFrame({
        "age": [3, 7, 20, 70, 66, 4, 30],
        "sex": ["Male", "Female", "Male", "Female", "Female", "Female", "Male"],
    })


@pytest.fixture
def grouped_df():
    return pd.DataFrame({
        "age_group": ["65+", "0-4", "19-64", "5-18", "0-4", "5-18", "19-64", "65+"],
        "sex": ["Female", "Female", "Male", "Male", "Male", "Female", "Female", "Male"],
        "value": [80, 90, 150, 120, 100, 110, 160, 70],
        "lowercl": [70, 80, 140, 110, 90, 100, 150, 60],
        "uppercl": [90, 100, 160, 130, 110, 120, 170, 80],
    })
