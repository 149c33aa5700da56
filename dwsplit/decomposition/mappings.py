"""Immutable original-to-image tables and per-subproblem coupling/cost maps."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from pyomo.common.collections import ComponentMap
from scipy.sparse import csr_matrix

from dwsplit.decomposition.expressions import AffineExpression
from dwsplit.exceptions import ModelConsistencyError
from dwsplit.types import Annotation, SubproblemAnnotation

logger = logging.getLogger(__name__)


class _HandleMapping(Mapping):
    """Read-only ``original -> image`` view keyed by Pyomo component identity."""

    _label = "mappings"

    def __init__(self, images: ComponentMap, owners: ComponentMap) -> None:
        self._images = images
        self._owners = owners

    def __getitem__(self, original):
        return self._images[original]

    def __contains__(self, original) -> bool:
        return original in self._images

    def __iter__(self):
        return iter(self._images)

    def __len__(self) -> int:
        return len(self._images)

    def owner(self, original) -> Annotation:
        """Annotation of the model holding the image of ``original``."""
        return self._owners[original]

    def __repr__(self) -> str:
        return f"{type(self).__name__} with {len(self)} {self._label}"


class VariableMapping(_HandleMapping):
    """Total, injective map from original ``VarData`` to image ``VarData``."""

    _label = "variable mappings"

    def __init__(self, images: ComponentMap, owners: ComponentMap, image_owners: ComponentMap) -> None:
        super().__init__(images, owners)
        self._image_owners = image_owners

    def image_owner(self, image) -> Annotation:
        try:
            return self._image_owners[image]
        except KeyError:
            raise ModelConsistencyError(f"{image.name} is not the image of any original variable") from None

    def images_of(self, annotation: Annotation) -> List:
        return [image for image, owner in self._image_owners.items() if owner == annotation]


class ConstraintMapping(_HandleMapping):
    """Map from original ``ConstraintData`` to image ``ConstraintData``."""

    _label = "constraint mappings"


class _MappingBuilder:
    """Pass-local accumulator frozen into a mapping once registration completes."""

    def __init__(self) -> None:
        self.images = ComponentMap()
        self.owners = ComponentMap()
        self.image_owners = ComponentMap()

    def add(self, original, image, owner: Annotation) -> None:
        if original in self.images:
            raise ModelConsistencyError(f"{original.name} was registered twice")
        self.images[original] = image
        self.owners[original] = owner
        self.image_owners[image] = owner

    def __contains__(self, original) -> bool:
        return original in self.images

    def __getitem__(self, original):
        return self.images[original]


class VariableMappingBuilder(_MappingBuilder):
    def image_owner(self, image) -> Annotation:
        return self.image_owners[image]

    def freeze(self) -> VariableMapping:
        return VariableMapping(self.images, self.owners, self.image_owners)


class ConstraintMappingBuilder(_MappingBuilder):
    def freeze(self) -> ConstraintMapping:
        return ConstraintMapping(self.images, self.owners)


class CouplingConstraintMapping(Mapping):
    """Coefficients of subproblem variables in master coupling constraints.

    Keys are subproblem image variables; values are tuples of
    ``(master constraint, coefficient)`` in constraint registration order.
    """

    def __init__(self, entries: Optional[ComponentMap] = None) -> None:
        self._entries = ComponentMap()
        for var, pairs in (entries or {}).items():
            self._entries[var] = tuple(pairs)

    def __getitem__(self, var) -> Tuple:
        return self._entries[var]

    def __contains__(self, var) -> bool:
        return var in self._entries

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_variable_coefficients(self, var) -> Tuple:
        """``(constraint, coefficient)`` pairs of ``var``; empty if it couples nothing."""
        return self._entries.get(var, ())

    def constraints(self) -> List:
        """Distinct coupling constraints in first-seen order."""
        seen = ComponentMap()
        for pairs in self._entries.values():
            for constraint, _ in pairs:
                if constraint not in seen:
                    seen[constraint] = len(seen)
        return list(seen.keys())

    def coupling_matrix(self, variables: Optional[Sequence] = None) -> Tuple[csr_matrix, List, List]:
        """Export the coefficients as a sparse matrix.

        Args:
            variables: Column order. Defaults to the mapping's own key order.

        Returns:
            ``(matrix, rows, columns)`` where ``matrix[i, j]`` is the
            coefficient of ``columns[j]`` in constraint ``rows[i]``.
        """
        columns = list(self._entries.keys()) if variables is None else list(variables)
        rows = self.constraints()
        row_of = ComponentMap((constraint, i) for i, constraint in enumerate(rows))
        data, row_idx, col_idx = [], [], []
        for j, var in enumerate(columns):
            for constraint, coef in self.get_variable_coefficients(var):
                data.append(coef)
                row_idx.append(row_of[constraint])
                col_idx.append(j)
        matrix = csr_matrix(
            (np.asarray(data, dtype=float), (row_idx, col_idx)),
            shape=(len(rows), len(columns)),
        )
        return matrix, rows, columns

    def __repr__(self) -> str:
        return f"CouplingConstraintMapping with {len(self)} variables"


class OriginalCostMapping(Mapping):
    """Original objective coefficient of each subproblem image variable."""

    def __init__(self, costs: Optional[ComponentMap] = None) -> None:
        self._costs = ComponentMap()
        for var, cost in (costs or {}).items():
            self._costs[var] = float(cost)

    def __getitem__(self, var) -> float:
        return self._costs[var]

    def __contains__(self, var) -> bool:
        return var in self._costs

    def __iter__(self):
        return iter(self._costs)

    def __len__(self) -> int:
        return len(self._costs)

    def get_cost(self, var) -> float:
        return self._costs.get(var, 0.0)

    def __repr__(self) -> str:
        return f"OriginalCostMapping with {len(self)} variables"


def build_coupling_mappings(
    master_constraints: Iterable[Tuple[object, AffineExpression]],
    variable_mapping: VariableMapping,
    subproblem_ids: Iterable[Hashable],
) -> Dict[Hashable, CouplingConstraintMapping]:
    """Collect subproblem coefficients in master-resident constraints.

    Args:
        master_constraints: ``(master image constraint, mapped expression)``
            pairs, the expression being the full image-space body of the
            original constraint.
        variable_mapping: Frozen variable mapping, used for image ownership.
        subproblem_ids: Every subproblem id; each receives a mapping even if
            its variables couple nothing.

    Returns:
        ``id -> CouplingConstraintMapping``.
    """
    entries = {sp_id: ComponentMap() for sp_id in subproblem_ids}
    for constraint, mapped in master_constraints:
        for image, coef in mapped.terms:
            owner = variable_mapping.image_owner(image)
            if owner.is_master:
                continue
            table = entries[owner.id]
            if image not in table:
                table[image] = []
            table[image].append((constraint, coef))
    mappings = {sp_id: CouplingConstraintMapping(table) for sp_id, table in entries.items()}
    logger.debug(
        "Coupling mappings: %s",
        {sp_id: len(mapping) for sp_id, mapping in mappings.items()},
    )
    return mappings


def build_cost_mappings(
    mapped_objective: Optional[AffineExpression],
    variable_mapping: VariableMapping,
    subproblem_ids: Iterable[Hashable],
) -> Dict[Hashable, OriginalCostMapping]:
    """Record the original objective coefficient of every subproblem variable.

    A missing objective yields empty mappings.
    """
    costs = {sp_id: ComponentMap() for sp_id in subproblem_ids}
    if mapped_objective is not None:
        for image, coef in mapped_objective.terms:
            owner = variable_mapping.image_owner(image)
            if isinstance(owner, SubproblemAnnotation):
                costs[owner.id][image] = coef
    return {sp_id: OriginalCostMapping(table) for sp_id, table in costs.items()}
