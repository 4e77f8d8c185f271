import logging
from typing import Sequence

import pandas as pd

from .constants import ValidationFields, ValidationStatus
from .report_types import BatchQualityReport
from .schemas import Coin

logger = logging.getLogger('crypto_data_validator')


class CryptoDataValidator:
    """Data-quality checks run on every fetched batch of coins.

    The checks only flag and report; the service still publishes the batch
    as returned by the API.
    """
    
    # Required field definitions
    REQUIRED_FIELDS = ['id', 'symbol', 'name', 'current_price']
    
    # Reasonable price range (USD)
    PRICE_RANGE = {
        'min': 0.000001,  # Minimum price
        'max': 1000000    # Maximum price
    }

    # Check name -> flag column added by the matching flag_* method
    CHECKS = {
        'price_range': ValidationFields.HAS_ABNORMAL_PRICE,
        'missing_values': ValidationFields.HAS_MISSING_VALUES,
        'duplicates': ValidationFields.HAS_DUPLICATE,
    }


    def to_frame(self, coins: Sequence[Coin]) -> pd.DataFrame:
        """
        Build a DataFrame with one row per coin and one column per field.
        """
        
        return pd.DataFrame(
            [coin.model_dump() for coin in coins],
            columns=list(Coin.model_fields.keys())
        )


    def flag_abnormal_prices(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Flag rows where current_price is outside the acceptable range
        (0.000001 - 1,000,000 USD). Missing prices are left to
        flag_missing_values.
        
        Returns:
            DataFrame with has_abnormal_price column added
        """
        
        # Initialize flag column
        df[ValidationFields.HAS_ABNORMAL_PRICE] = False

        if 'current_price' in df.columns:
            numeric_prices = pd.to_numeric(df['current_price'], errors='coerce')
            abnormal_price = (
                numeric_prices.notna() & (
                    (numeric_prices < self.PRICE_RANGE['min']) |
                    (numeric_prices > self.PRICE_RANGE['max'])
                )
            )

            df.loc[abnormal_price, ValidationFields.HAS_ABNORMAL_PRICE] = True

            abnormal_count = df[ValidationFields.HAS_ABNORMAL_PRICE].sum()
            if abnormal_count > 0:
                logger.warning(f"Found {abnormal_count} abnormal prices")
        
        return df
    

    def flag_missing_values(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Flag rows with missing values in required fields.

        Returns:
            DataFrame with has_missing_values column added.
        """
        
        # Initialize flag column
        df[ValidationFields.HAS_MISSING_VALUES] = False
        
        present = [field for field in self.REQUIRED_FIELDS if field in df.columns]
        has_missing = df[present].isnull().any(axis=1)
        df.loc[has_missing, ValidationFields.HAS_MISSING_VALUES] = True
        missing_count = df[ValidationFields.HAS_MISSING_VALUES].sum()
        
        if missing_count > 0:
            logger.warning(f"Found {missing_count} records with missing values")
        
        return df
    
    
    def flag_duplicates(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Flag rows repeating an earlier 'id'.
        
        Returns:
            DataFrame with has_duplicate column added
        """
        
        # Initialize flag column
        df[ValidationFields.HAS_DUPLICATE] = False
        
        if 'id' in df.columns:
            has_duplicate = df.duplicated(subset=['id'], keep='first')
            df.loc[has_duplicate, ValidationFields.HAS_DUPLICATE] = True
            duplicate_count = df[ValidationFields.HAS_DUPLICATE].sum()

            if duplicate_count > 0:
                logger.warning(f"Found {duplicate_count} duplicate records")
        
        return df


    def validate_coins(self, coins: Sequence[Coin], stage: str = 'market_data') -> BatchQualityReport:
        """
        Run every check on a batch and summarize the failures.

        Args:
            coins: Records as decoded from the API.
            stage: Label stored in the report (e.g. 'top_coins').

        Returns:
            SKIPPED for an empty batch, FAILED when any check flagged a row,
            PASSED otherwise. `failed_checks` maps check name to flagged row
            count and `flagged_ids` lists up to five ids per failed check.
        """

        report: BatchQualityReport = {
            'status': ValidationStatus.SKIPPED,
            'stage': stage,
            'total_rows': len(coins),
            'failed_checks': {},
            'flagged_ids': {},
        }
        if not coins:
            return report

        df = self.to_frame(coins)
        df = self.flag_abnormal_prices(df)
        df = self.flag_missing_values(df)
        df = self.flag_duplicates(df)

        for check, flag_column in self.CHECKS.items():
            flagged = df[df[flag_column]]
            if flagged.empty:
                continue
            report['failed_checks'][check] = len(flagged)
            report['flagged_ids'][check] = list(flagged['id'].head(5))

        report['status'] = ValidationStatus.FAILED if report['failed_checks'] else ValidationStatus.PASSED
        return report
