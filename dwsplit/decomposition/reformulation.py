"""Dantzig-Wolfe reformulation of an annotated Pyomo model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Tuple

from pyomo.core.expr.numeric_expr import LinearExpression
from pyomo.environ import Any, ConcreteModel, Constraint, Var
from tqdm.auto import tqdm

from dwsplit.config import DecompositionConfig
from dwsplit.decomposition.annotation import resolve_annotations
from dwsplit.decomposition.callbacks import MappingBasedCallbacks
from dwsplit.decomposition.expressions import map_expression
from dwsplit.decomposition.mappings import (
    ConstraintMapping,
    ConstraintMappingBuilder,
    CouplingConstraintMapping,
    OriginalCostMapping,
    VariableMapping,
    VariableMappingBuilder,
    build_coupling_mappings,
    build_cost_mappings,
)
from dwsplit.decomposition.models import (
    fix_images,
    original_objective,
    register_constraints,
    register_objective,
    register_variables,
)
from dwsplit.decomposition.partitioning import partition_annotations
from dwsplit.exceptions import EmptyDecompositionError
from dwsplit.types import MASTER, ClassifyFn, SubproblemAnnotation

logger = logging.getLogger(__name__)


@dataclass
class SubproblemModel:
    """A pricing subproblem together with its coupling and cost tables."""

    id: Hashable
    model: ConcreteModel
    coupling_mapping: CouplingConstraintMapping = field(default_factory=CouplingConstraintMapping)
    cost_mapping: OriginalCostMapping = field(default_factory=OriginalCostMapping)

    def variables(self) -> List:
        """Image variables living in this subproblem, in declaration order."""
        return list(self.model.component_data_objects(ctype=Var, descend_into=False))

    def callbacks(self) -> MappingBasedCallbacks:
        return MappingBasedCallbacks.from_subproblem(self)


@dataclass
class Reformulation:
    """Result of :func:`dantzig_wolfe_decomposition`.

    Attributes:
        master_problem: Master model with coupling and convexity constraints.
        subproblem_models: ``id -> SubproblemModel`` in sorted id order.
        convexity_constraints_lb: ``id -> lower convexity constraint`` in the master.
        convexity_constraints_ub: ``id -> upper convexity constraint`` in the master.
        variable_mapping: Original variable to image variable.
        constraint_mapping: Original constraint to image constraint.
    """

    master_problem: ConcreteModel
    subproblem_models: Dict[Hashable, SubproblemModel]
    convexity_constraints_lb: Dict[Hashable, object]
    convexity_constraints_ub: Dict[Hashable, object]
    variable_mapping: VariableMapping
    constraint_mapping: ConstraintMapping

    def master(self) -> ConcreteModel:
        return self.master_problem

    def subproblems(self) -> Dict[Hashable, SubproblemModel]:
        return self.subproblem_models

    def subproblem(self, sp_id: Hashable) -> SubproblemModel:
        try:
            return self.subproblem_models[sp_id]
        except KeyError:
            raise KeyError(f"No subproblem with id {sp_id!r}") from None

    def subproblem_ids(self) -> List[Hashable]:
        return list(self.subproblem_models)

    def convexity_lower(self, sp_id: Hashable):
        return self.convexity_constraints_lb[sp_id]

    def convexity_upper(self, sp_id: Hashable):
        return self.convexity_constraints_ub[sp_id]


def master(reformulation: Reformulation) -> ConcreteModel:
    return reformulation.master()


def subproblems(reformulation: Reformulation) -> Dict[Hashable, SubproblemModel]:
    return reformulation.subproblems()


def coupling_mapping(subproblem: SubproblemModel) -> CouplingConstraintMapping:
    return subproblem.coupling_mapping


def cost_mapping(subproblem: SubproblemModel) -> OriginalCostMapping:
    return subproblem.cost_mapping


def _check_reserved_names(model, config: DecompositionConfig, objective_name, original_name=None) -> None:
    if objective_name is not None and objective_name != original_name and model.component(objective_name) is not None:
        raise ValueError(f"Objective name {objective_name!r} clashes with a component of the original model")
    names = (config.convexity_lower_name, config.convexity_upper_name)
    if names[0] == names[1]:
        raise ValueError(f"Convexity constraint names must differ, both are {names[0]!r}")
    for name in names:
        if model.component(name) is not None or name == objective_name:
            raise ValueError(f"Convexity constraint name {name!r} clashes with a component of the original model")


def add_convexity_constraints(
    master_model: ConcreteModel,
    subproblem_ids: Iterable[Hashable],
    config: DecompositionConfig | None = None,
) -> Tuple[Dict[Hashable, object], Dict[Hashable, object]]:
    """Allocate one lower and one upper convexity placeholder per subproblem.

    The constraints start as ``0 >= lower_rhs`` and ``0 <= upper_rhs`` with
    empty bodies; a column generation driver fills in the column terms.

    Returns:
        ``(lower, upper)`` dictionaries from subproblem id to constraint.
    """
    config = config or DecompositionConfig()
    lower_component = Constraint(Any)
    upper_component = Constraint(Any)
    master_model.add_component(config.convexity_lower_name, lower_component)
    master_model.add_component(config.convexity_upper_name, upper_component)
    lower, upper = {}, {}
    for sp_id in subproblem_ids:
        lower_component[sp_id] = (config.convexity_lower_rhs, LinearExpression([0.0]), None)
        upper_component[sp_id] = (None, LinearExpression([0.0]), config.convexity_upper_rhs)
        lower[sp_id] = lower_component[sp_id]
        upper[sp_id] = upper_component[sp_id]
    logger.debug("Allocated %d convexity constraint pairs", len(lower))
    return lower, upper


def dantzig_wolfe_decomposition(
    model: ConcreteModel,
    classify: ClassifyFn,
    config: DecompositionConfig | None = None,
) -> Reformulation:
    """Split ``model`` into a master problem and pricing subproblems.

    Every top-level variable and active constraint of ``model`` is passed to
    ``classify(name, *index)`` and copied to the model its annotation names.
    ``model`` itself is left untouched.

    Args:
        model: Original Pyomo model with affine constraints and objective.
        classify: Annotation function, see :class:`dwsplit.types.ClassifyFn`.
        config: Naming and verbosity options.

    Returns:
        The :class:`Reformulation`.

    Raises:
        MissingAnnotation: A declared key has no annotation.
        EmptyDecompositionError: ``model`` has no variables or no constraints.
        NonlinearExpressionError: A constraint or the objective is not affine.
        ValueError: Several active objectives, or a convexity name clash.
    """
    config = config or DecompositionConfig()
    table = resolve_annotations(model, classify)
    if not table.variables:
        raise EmptyDecompositionError("The model declares no variables")
    if not table.constraints:
        raise EmptyDecompositionError("The model declares no active constraints")
    partition = partition_annotations(table)
    objective = original_objective(model)
    objective_name = original_name = None
    if objective is not None:
        original_name = objective[0]
        objective_name = config.objective_name or original_name
    _check_reserved_names(model, config, objective_name, original_name)

    sp_ids = partition.subproblem_ids()
    master_model = ConcreteModel(name="master")
    targets = [(MASTER, master_model)]
    for sp_id in sp_ids:
        targets.append((SubproblemAnnotation(sp_id), ConcreteModel(name=f"subproblem[{sp_id!r}]")))

    variable_builder = VariableMappingBuilder()
    constraint_builder = ConstraintMappingBuilder()
    pending_fixes = []
    with tqdm(total=2 * len(targets), desc="Decomposing", disable=(config.verbosity <= 0)) as pbar:
        for annotation, target in targets:
            pending_fixes.extend(
                register_variables(target, annotation, model, partition.variables_of(annotation), variable_builder)
            )
            pbar.update(1)
        variable_mapping = variable_builder.freeze()

        master_registered = []
        for annotation, target in targets:
            registered = register_constraints(
                target,
                annotation,
                model,
                partition.constraints_of(annotation),
                variable_mapping,
                constraint_builder,
            )
            if annotation.is_master:
                master_registered = registered
            pbar.update(1)
    constraint_mapping = constraint_builder.freeze()

    mapped_objective = None
    if objective is not None:
        _, sense, expr = objective
        mapped_objective = map_expression(expr, variable_mapping, context="objective")
        for annotation, target in targets:
            register_objective(
                target,
                annotation,
                objective_name,
                sense,
                mapped_objective,
                variable_mapping,
                is_master=annotation.is_master,
            )

    # Images are fixed only now so fixed variables survive as terms above.
    fix_images(pending_fixes)

    lower, upper = add_convexity_constraints(master_model, sp_ids, config)
    couplings = build_coupling_mappings(master_registered, variable_mapping, sp_ids)
    costs = build_cost_mappings(mapped_objective, variable_mapping, sp_ids)
    subproblem_models = {
        annotation.id: SubproblemModel(
            id=annotation.id,
            model=target,
            coupling_mapping=couplings[annotation.id],
            cost_mapping=costs[annotation.id],
        )
        for annotation, target in targets[1:]
    }
    logger.info(
        "Decomposed model into a master with %d variables and %d subproblems",
        len(variable_mapping.images_of(MASTER)),
        len(subproblem_models),
    )
    return Reformulation(
        master_problem=master_model,
        subproblem_models=subproblem_models,
        convexity_constraints_lb=lower,
        convexity_constraints_ub=upper,
        variable_mapping=variable_mapping,
        constraint_mapping=constraint_mapping,
    )
