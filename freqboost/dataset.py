"""
Claims dataset: features, exposure (time at risk) and observed claim counts.

The dataset is read-only for the life of a boosting run. All rounds see the
same features, exposures and counts; only the orchestrator's score moves.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Optional, List, Union, Sequence

Features = Union[pd.DataFrame, np.ndarray]


@dataclass(frozen=True, eq=False)
class ClaimsDataset:
    """
    Ordered collection of policies with their exposure and claim counts.

    Attributes:
        features: Covariates, a DataFrame (categorical and numeric columns)
                  or a 2-D array
        exposure: Time at risk per policy, non-negative
        counts: Number of claims per policy, non-negative integers
    """
    features: Features
    exposure: np.ndarray
    counts: np.ndarray

    def __post_init__(self):
        features = self.features
        if not isinstance(features, pd.DataFrame):
            features = np.asarray(features)
            if features.ndim != 2:
                raise ValueError("features must be 2-dimensional")

        exposure = np.array(self.exposure, dtype=np.float64)
        counts = np.array(self.counts, dtype=np.float64)

        if exposure.ndim != 1:
            raise ValueError("exposure must be 1-dimensional")
        if counts.ndim != 1:
            raise ValueError("counts must be 1-dimensional")
        if not (len(features) == len(exposure) == len(counts)):
            raise ValueError("features, exposure and counts must have same number of samples")
        if not np.all(np.isfinite(exposure)) or np.any(exposure < 0):
            raise ValueError("exposure must be finite and non-negative")
        if not np.all(np.isfinite(counts)) or np.any(counts < 0):
            raise ValueError("counts must be finite and non-negative")
        if np.any(counts != np.round(counts)):
            raise ValueError("counts must contain integer values")

        exposure.setflags(write=False)
        counts.setflags(write=False)

        # frozen dataclass: bypass __setattr__ for the normalised arrays
        object.__setattr__(self, 'features', features)
        object.__setattr__(self, 'exposure', exposure)
        object.__setattr__(self, 'counts', counts)

    def __len__(self) -> int:
        return len(self.counts)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, count_column: str,
                   exposure_column: Optional[str] = None,
                   feature_columns: Optional[List[str]] = None) -> 'ClaimsDataset':
        """
        Build a dataset from a single policy table.

        Args:
            df: Policy-level table
            count_column: Column holding the number of claims
            exposure_column: Column holding exposure; unit exposure if None
            feature_columns: Covariates to keep; defaults to every other column
        """
        if feature_columns is None:
            excluded = {count_column, exposure_column}
            feature_columns = [c for c in df.columns if c not in excluded]

        exposure = (df[exposure_column].to_numpy() if exposure_column is not None
                    else np.ones(len(df)))

        return cls(
            features=df[feature_columns].reset_index(drop=True),
            exposure=exposure,
            counts=df[count_column].to_numpy()
        )

    @property
    def total_count(self) -> float:
        return float(np.sum(self.counts))

    @property
    def total_exposure(self) -> float:
        return float(np.sum(self.exposure))

    def subset(self, indices: Sequence[int]) -> 'ClaimsDataset':
        """Return the rows at `indices` as a new dataset."""
        indices = np.asarray(indices)
        if isinstance(self.features, pd.DataFrame):
            features = self.features.iloc[indices].reset_index(drop=True)
        else:
            features = self.features[indices]

        return ClaimsDataset(
            features=features,
            exposure=self.exposure[indices],
            counts=self.counts[indices]
        )
