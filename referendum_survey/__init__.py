"""Referendum survey analysis (descriptives, sample proportion, complete-case and
multiply-imputed logistic regression, stakeholder tables and figures).

Entry point:
- `report.py`: `referendum-report --data survey.csv` runs the whole analysis.
"""

from .eda import clean_survey, load_data  # noqa: F401
from .imputation import impute_datasets, pool_rubin, run_multiple_imputation  # noqa: F401
from .models import coefficient_table, fit_logit  # noqa: F401
from .proportion import sample_proportion  # noqa: F401

__version__ = "0.1.0"
