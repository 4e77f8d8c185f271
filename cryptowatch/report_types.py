from typing import Dict, List, TypedDict

from .constants import ValidationStatus


class BatchQualityReport(TypedDict):
    """
    Data-quality summary for one fetched batch of coins.
    """

    status: ValidationStatus
    stage: str
    total_rows: int
    failed_checks: Dict[str, int]      # check name -> flagged row count
    flagged_ids: Dict[str, List[str]]  # check name -> first flagged ids
