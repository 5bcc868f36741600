"""
Loan Default Pipeline

Data preparation, feature selection and ensemble scoring for loan default
prediction: union of train/test tables, mean imputation with missingness
indicators, IQR outlier flags, engineered features and a top-N feature cut
feeding Random Forest and XGBoost classifiers.
"""

__version__ = "1.0.0"
__author__ = "Credit Risk Analytics Team"
