"""
Alignment of rater records into a units x raters rating table.

Every span annotated by any rater becomes a coding unit. A rater's rating of
a unit is the category of its first annotation on exactly that span; raters
that did not annotate the span leave a ``None`` cell.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..models import CodingUnit, RaterRecord


@dataclass(frozen=True)
class RatingTable:
    """Units x raters matrix of category keys (``None`` for missing)."""
    rater_ids: List[str]
    units: List[CodingUnit]
    ratings: List[List[Optional[str]]]

    @classmethod
    def from_records(cls, records: Sequence[RaterRecord]) -> 'RatingTable':
        """
        Build a rating table from rater records.

        Args:
            records: Rater records in the order they should appear as columns

        Returns:
            RatingTable whose units follow first-seen order across records
        """
        per_rater = [record.ratings_by_unit() for record in records]

        units: List[CodingUnit] = []
        seen: Dict[CodingUnit, None] = {}
        for record in records:
            for annotation in record.annotations:
                unit = annotation.unit
                if unit not in seen:
                    seen[unit] = None
                    units.append(unit)

        ratings = [[rater.get(unit) for rater in per_rater] for unit in units]
        return cls(
            rater_ids=[record.rater_id for record in records],
            units=units,
            ratings=ratings
        )

    @property
    def unit_count(self) -> int:
        return len(self.units)

    @property
    def rater_count(self) -> int:
        return len(self.rater_ids)

    def categories(self) -> List[str]:
        """Sorted distinct category keys present in the table."""
        return sorted({value for row in self.ratings for value in row if value is not None})

    def select_raters(self, indices: Sequence[int]) -> 'RatingTable':
        """Sub-table restricted to the given rater columns, dropping empty units."""
        units = []
        ratings = []
        for unit, row in zip(self.units, self.ratings):
            selected = [row[i] for i in indices]
            if any(value is not None for value in selected):
                units.append(unit)
                ratings.append(selected)
        return RatingTable(
            rater_ids=[self.rater_ids[i] for i in indices],
            units=units,
            ratings=ratings
        )

    def resample(self, unit_indices: Sequence[int]) -> 'RatingTable':
        """Table built from the given unit rows; repeated indices repeat rows."""
        return RatingTable(
            rater_ids=list(self.rater_ids),
            units=[self.units[i] for i in unit_indices],
            ratings=[list(self.ratings[i]) for i in unit_indices]
        )
