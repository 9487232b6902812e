"""
buddy_client/validators package marker.
"""

from buddy_client.validators.dataset_validator import DatasetValidator, dataset_name

__all__ = [
    "DatasetValidator",
    "dataset_name",
]
