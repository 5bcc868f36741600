"""
Pytest Configuration and Shared Fixtures

Provides common fixtures for all test modules including:
- Sample configurations (Pydantic-based)
- Small raw train/test loan tables with known properties
- Fast model settings and temporary output directories
"""

import sys
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loan_default.config.schema import DataConfig, PipelineConfig


# ===================================================================
# CONFIGURATION FIXTURES
# ===================================================================

@pytest.fixture
def data_config() -> DataConfig:
    return DataConfig()


@pytest.fixture
def sample_config_dict(tmp_path) -> Dict[str, Any]:
    """Valid config dict with fast model settings and outputs under tmp_path."""
    return {
        "profile": "test",
        "data": {
            "train_path": str(tmp_path / "train.csv"),
            "test_path": str(tmp_path / "test.csv"),
        },
        "selection": {"top_n": 8},
        "model": {
            "random_forest_params": {"n_estimators": 25, "min_samples_leaf": 3},
            "xgboost_params": {"n_estimators": 25, "max_depth": 3},
        },
        "evaluation": {"cv_folds": 3},
        "output": {
            "base_dir": str(tmp_path / "runs"),
            "predictions_path": str(tmp_path / "predictions.csv"),
            "model_cache_dir": str(tmp_path / "cache"),
        },
        "reproducibility": {"n_jobs": 1},
    }


@pytest.fixture
def pipeline_config(sample_config_dict) -> PipelineConfig:
    return PipelineConfig(**sample_config_dict)


# ===================================================================
# DATA FIXTURES
# ===================================================================

@pytest.fixture
def raw_train() -> pd.DataFrame:
    """Eight labelled loans in the raw input format.

    Over the union with raw_test: annual_inc (10/12), revol_util (11/12)
    and emp_title (10/12) are imputable, mths_since_last_delinq (2/12) is
    dropped and every other column is complete.
    """
    return pd.DataFrame({
        "id": [1, 2, 3, 4, 5, 6, 7, 8],
        "loan_amnt": [5000.0, 12000.0, 8000.0, 20000.0, 3000.0, 15000.0, 7000.0, 10000.0],
        "int_rate": ["7.5%", "13.56%", "10.0%", "21.0%", "6.25%", "15.5%", "11.0%", "18.0%"],
        "grade": ["A", "C", "B", "E", "A", "C", "B", "D"],
        "emp_title": [
            "Senior Engineering Manager", "Data Specialist", "Retail Associate", None,
            "CEO", "Software Engineer", "Teacher", "Store Manager",
        ],
        "issue_d": ["Dec-2017", "Jan-2016", "Mar-2015", "Jul-2017",
                    "Dec-2014", "Feb-2016", "Oct-2013", "May-2017"],
        "earliest_cr_line": ["Aug-2003", "Jan-1999", "Nov-2010", "Apr-2001",
                             "Jun-1995", "Sep-2008", "Feb-2000", "Dec-2012"],
        "zip_code": ["941xx", "100xx", "750xx", "941xx", "331xx", "100xx", "606xx", "750xx"],
        "annual_inc": [85000.0, np.nan, 42000.0, 61000.0, np.nan, 120000.0, 38000.0, 52000.0],
        "revol_util": ["45.2%", "80.1%", None, "95.0%", "12.5%", "60.0%", "33.3%", "70.0%"],
        "dti": [12.5, 25.1, 18.0, 33.2, 5.4, 20.0, 15.5, 28.7],
        "mths_since_last_delinq": [np.nan, 14.0, np.nan, np.nan, np.nan, np.nan, np.nan, np.nan],
        "default": [0, 1, 0, 1, 0, 1, 0, 1],
    })


@pytest.fixture
def raw_test() -> pd.DataFrame:
    """Four unlabelled loans sharing the train schema (no target column)."""
    return pd.DataFrame({
        "id": [101, 102, 103, 104],
        "loan_amnt": [9000.0, 4000.0, 25000.0, 6000.0],
        "int_rate": ["9.0%", "14.0%", "22.5%", "8.0%"],
        "grade": ["B", "C", "E", "A"],
        "emp_title": ["Director of Sales", "Nurse", "IT Specialist", None],
        "issue_d": ["Jun-2016", "Aug-2017", "Jan-2015", "Nov-2016"],
        "earliest_cr_line": ["Mar-2005", "Oct-1998", "Jul-2009", "May-2002"],
        "zip_code": ["606xx", "941xx", "331xx", "100xx"],
        "annual_inc": [55000.0, 47000.0, 150000.0, 73000.0],
        "revol_util": ["50.0%", "22.0%", "88.8%", "40.0%"],
        "dti": [14.0, 22.0, 30.5, 9.9],
        "mths_since_last_delinq": [np.nan, np.nan, 40.0, np.nan],
    })


@pytest.fixture
def sample_loans():
    """Synthetic train/test tables large enough to fit and cross-validate."""
    from scripts.generate_sample_data import generate_train_test
    return generate_train_test(n_train=400, n_test=120, seed=7)


@pytest.fixture
def sample_csvs(tmp_path, sample_loans):
    """The synthetic tables written to train.csv / test.csv in tmp_path."""
    train, test = sample_loans
    train_path = tmp_path / "train.csv"
    test_path = tmp_path / "test.csv"
    train.to_csv(train_path, index=False)
    test.to_csv(test_path, index=False)
    return train_path, test_path
