from pyomo.common.collections import ComponentMap

from dwsplit import DantzigWolfeDecomposition, DecompositionConfig
from dwsplit.case_studies import build_gap_model, gap_classify


def main():
    machines = [1, 2]
    jobs = [1, 2, 3]
    costs = {(m, j): 2 * m + j for m in machines for j in jobs}
    capacities = {1: 2, 2: 2}
    penalties = {j: 50.0 for j in jobs}
    model = build_gap_model(machines, jobs, costs, capacities, penalty_costs=penalties, objective_constant=10.0)

    cfg = DecompositionConfig(verbosity=1)
    reformulation = DantzigWolfeDecomposition(config=cfg, classify=gap_classify).run(model)

    master = reformulation.master()
    master.pprint()
    for sp_id, sp in reformulation.subproblems().items():
        print(f"Subproblem {sp_id!r}: {len(sp.variables())} variables")
        print(" ", sp.coupling_mapping)
        print(" ", sp.cost_mapping)

    # Price the column "machine 1 takes jobs 1 and 2" with flat duals.
    sp = reformulation.subproblem(1)
    callbacks = sp.callbacks()
    column = ComponentMap((sp.model.x[1, j], 1.0) for j in (1, 2))
    duals = ComponentMap((master.assignment[j], 5.0) for j in jobs)
    print("column cost:", callbacks.compute_column_cost(column))
    print("coefficients:", {c.name: v for c, v in callbacks.compute_column_coefficients(column).items()})
    print("reduced costs:", {v.name: rc for v, rc in callbacks.compute_reduced_costs(duals).items()})


if __name__ == "__main__":
    main()
