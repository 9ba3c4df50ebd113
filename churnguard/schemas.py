"""
Data schema definitions for churn scoring.

Uses Pandera for runtime validation of customer frames to catch bad
records before scoring. Optional signals (NPS, login recency, usage)
are nullable: the components fill them with documented defaults.
"""

import pandera as pa
from pandera import Column, Check, DataFrameSchema


# Schema for scoring input data
SCORING_INPUT_SCHEMA = DataFrameSchema(
    {
        "CUSTOMER_ID": Column(
            int,
            nullable=False,
            unique=True,
            description="Unique customer identifier"
        ),
        "HEALTH_SCORE": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(100),
            ],
            description="Composite 0-100 engagement metric"
        ),
        "NPS_SCORE": Column(
            float,
            nullable=True,  # Never surveyed
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(10),
            ],
            description="Latest NPS response (0-10)"
        ),
        "SUPPORT_TICKETS": Column(
            int,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0),
            description="Open support ticket count"
        ),
        "DAYS_SINCE_LOGIN": Column(
            float,
            nullable=True,  # Never logged in
            checks=Check.greater_than_or_equal_to(0),
            description="Whole days since last login"
        ),
        "USAGE_TOTAL": Column(
            float,
            nullable=True,  # Usage not tracked
            checks=Check.greater_than_or_equal_to(0),
            description="logins + features + api_calls / 100"
        ),
        "MRR": Column(
            float,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0),
            description="Monthly recurring revenue"
        ),
        "CHURN_RISK": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(1),
            ],
            description="Static fallback risk estimate (0-1)"
        ),
    },
    strict=False,  # Allow extra columns (plan, name, ...)
    coerce=True,   # Try to coerce types automatically
    description="Schema for churn scoring input data"
)


# Schema for scoring output data
SCORING_OUTPUT_SCHEMA = DataFrameSchema(
    {
        "CUSTOMER_ID": Column(int, nullable=False),
        "CHURN_PROBABILITY": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(100),
            ]
        ),
        "RISK_LEVEL": Column(
            str,
            nullable=False,
            checks=Check.isin(["low", "medium", "high"])
        ),
        "CONFIDENCE": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(1),
            ]
        ),
    },
    strict=False,  # Allow component columns
    coerce=True,
    description="Schema for churn scoring output data"
)

SchemaError = pa.errors.SchemaError
