from dwsplit import dantzig_wolfe, dantzig_wolfe_master
from dwsplit.case_studies import build_mixed_gap_model

RULES = """
x[m, _] => subproblem(site[m])
overtime[m] => subproblem(site[m])
capacity[m] => subproblem(site[m])
assignment[_] => master()
overtime_budget => master()
shifts => master()
"""


def main():
    machines = [1, 2, 3]
    jobs = [1, 2, 3, 4]
    costs = {(m, j): (m * j) % 5 + 1 for m in machines for j in jobs}
    capacities = {m: 2 for m in machines}
    model = build_mixed_gap_model(machines, jobs, costs, capacities)

    reformulation = dantzig_wolfe(model, RULES, namespace={"site": {1: "east", 2: "east", 3: "west"}})
    for sp_id, sp in reformulation.subproblems().items():
        names = [v.name for v in sp.variables()]
        print(f"{sp_id}: {names}")
    print("master variables:", [v.name for v in reformulation.variable_mapping.images_of(dantzig_wolfe_master())])


if __name__ == "__main__":
    main()
