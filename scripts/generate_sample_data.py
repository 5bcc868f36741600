#!/usr/bin/env python3
"""
Sample Data Generator

Generates synthetic train/test loan tables in the raw input format:
percent strings ("13.56%"), "<Mon>-<YYYY>" dates, free-text job titles,
masked zip codes ("941xx"), partially missing columns and heavy-tailed
balances with outliers.
"""

from pathlib import Path
from typing import Tuple
import argparse

import numpy as np
import pandas as pd


# Seed for reproducibility
RANDOM_SEED = 42

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

GRADES = {
    # grade: (share, base interest rate, default rate)
    "A": (0.20, 7.0, 0.05),
    "B": (0.30, 11.0, 0.10),
    "C": (0.27, 14.5, 0.17),
    "D": (0.14, 18.5, 0.25),
    "E": (0.06, 22.5, 0.32),
    "F": (0.02, 26.0, 0.38),
    "G": (0.01, 29.0, 0.42),
}

JOB_TITLES = [
    "Senior Engineering Manager", "Store Manager", "Director of Sales", "CEO",
    "Software Engineer", "Mechanical Engineer", "Data Specialist",
    "IT Specialist", "Teacher", "Registered Nurse", "Driver",
    "Retail Associate", "Sales", "Administrative Assistant", "Owner",
]

EMP_LENGTHS = ["< 1 year", "1 year", "2 years", "3 years", "4 years", "5 years",
               "6 years", "7 years", "8 years", "9 years", "10+ years"]

PURPOSES = ["debt_consolidation", "credit_card", "home_improvement", "other",
            "major_purchase", "medical", "small_business", "car"]

STATES = ["CA", "NY", "TX", "FL", "IL", "NJ", "PA", "OH", "GA", "WA"]

ZIP_PREFIXES = ["941", "100", "750", "331", "606", "070", "191", "441", "303", "981"]

# Share of rows with a missing value, per column
MISSING_RATES = {
    "emp_title": 0.06,
    "emp_length": 0.06,
    "dti": 0.01,
    "revol_util": 0.01,
    "tot_coll_amt": 0.10,
    "tot_cur_bal": 0.10,
    "total_rev_hi_lim": 0.10,
    "mths_since_last_delinq": 0.50,
}


def _month_year(rng: np.random.Generator, years: np.ndarray) -> np.ndarray:
    months = rng.choice(MONTHS, size=len(years))
    return np.array([f"{m}-{y}" for m, y in zip(months, years)])


def generate_loans(n_rows: int, seed: int = RANDOM_SEED, start_id: int = 1) -> pd.DataFrame:
    """Generate ``n_rows`` raw loan records with a 0/1 ``default`` column.

    Args:
        n_rows: Number of records.
        seed: Random seed.
        start_id: First identifier.

    Returns:
        Raw loan table.
    """
    rng = np.random.default_rng(seed)

    grade_names = list(GRADES)
    shares = np.array([GRADES[g][0] for g in grade_names])
    grades = rng.choice(grade_names, size=n_rows, p=shares / shares.sum())
    sub_grades = np.array([f"{g}{k}" for g, k in zip(grades, rng.integers(1, 6, n_rows))])

    base_rate = np.array([GRADES[g][1] for g in grades])
    int_rate = np.round(base_rate + rng.normal(0, 1.2, n_rows), 2).clip(5.0, 31.0)
    revol_util = np.round(rng.beta(2, 2.5, n_rows) * 100, 1)

    annual_inc = np.round(rng.lognormal(11.0, 0.55, n_rows), -2)
    revol_bal = np.round(rng.lognormal(9.3, 1.0, n_rows))
    tot_coll_amt = np.where(rng.random(n_rows) < 0.85, 0.0,
                            np.round(rng.lognormal(6.5, 1.5, n_rows)))
    tot_cur_bal = np.round(rng.lognormal(11.2, 1.1, n_rows))
    total_rev_hi_lim = np.round(revol_bal * rng.uniform(1.2, 4.0, n_rows))
    dti = np.round(rng.gamma(4.0, 4.5, n_rows), 2)

    issue_years = rng.integers(2012, 2018, n_rows)
    credit_years = issue_years - rng.integers(3, 30, n_rows)

    # Default probability from grade, dti and utilisation
    base_default = np.array([GRADES[g][2] for g in grades])
    logit = (np.log(base_default / (1 - base_default))
             + 0.02 * (dti - 18) + 0.008 * (revol_util - 50))
    default = (rng.random(n_rows) < 1 / (1 + np.exp(-logit))).astype(int)

    df = pd.DataFrame({
        "id": np.arange(start_id, start_id + n_rows),
        "loan_amnt": np.round(rng.uniform(1000, 40000, n_rows), -2),
        "term": rng.choice([" 36 months", " 60 months"], size=n_rows, p=[0.72, 0.28]),
        "int_rate": [f"{r:.2f}%" for r in int_rate],
        "grade": grades,
        "sub_grade": sub_grades,
        "emp_title": rng.choice(JOB_TITLES, size=n_rows),
        "emp_length": rng.choice(EMP_LENGTHS, size=n_rows),
        "home_ownership": rng.choice(["MORTGAGE", "RENT", "OWN"], size=n_rows, p=[0.5, 0.4, 0.1]),
        "annual_inc": annual_inc,
        "verification_status": rng.choice(
            ["Not Verified", "Source Verified", "Verified"], size=n_rows
        ),
        "issue_d": _month_year(rng, issue_years),
        "purpose": rng.choice(PURPOSES, size=n_rows),
        "zip_code": [f"{z}xx" for z in rng.choice(ZIP_PREFIXES, size=n_rows)],
        "addr_state": rng.choice(STATES, size=n_rows),
        "dti": dti,
        "earliest_cr_line": _month_year(rng, credit_years),
        "revol_bal": revol_bal,
        "revol_util": [f"{u}%" for u in revol_util],
        "total_acc": rng.integers(3, 60, n_rows),
        "initial_list_status": rng.choice(["w", "f"], size=n_rows, p=[0.6, 0.4]),
        "application_type": rng.choice(["Individual", "Joint App"], size=n_rows, p=[0.95, 0.05]),
        "tot_coll_amt": tot_coll_amt,
        "tot_cur_bal": tot_cur_bal,
        "total_rev_hi_lim": total_rev_hi_lim,
        "mths_since_last_delinq": rng.integers(0, 120, n_rows).astype(float),
        "default": default,
    })

    for col, rate in MISSING_RATES.items():
        df.loc[rng.random(n_rows) < rate, col] = np.nan

    return df


def generate_train_test(
    n_train: int = 5000,
    n_test: int = 2000,
    seed: int = RANDOM_SEED,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Generate disjoint train and test tables; the test target is dropped."""
    train = generate_loans(n_train, seed=seed, start_id=1)
    test = generate_loans(n_test, seed=seed + 1, start_id=n_train + 1)
    return train, test.drop(columns=["default"])


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic loan tables")
    parser.add_argument("--n-train", type=int, default=5000, help="Training rows")
    parser.add_argument("--n-test", type=int, default=2000, help="Test rows")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED, help="Random seed")
    parser.add_argument("--output-dir", "-o", type=str, default="data", help="Output directory")
    args = parser.parse_args()

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    train, test = generate_train_test(args.n_train, args.n_test, args.seed)
    train.to_csv(out_dir / "train.csv", index=False)
    test.to_csv(out_dir / "test.csv", index=False)

    print(f"Wrote {len(train):,} train rows to {out_dir / 'train.csv'}")
    print(f"Wrote {len(test):,} test rows to {out_dir / 'test.csv'}")
    print(f"Default rate: {train['default'].mean():.1%}")


if __name__ == "__main__":
    main()
