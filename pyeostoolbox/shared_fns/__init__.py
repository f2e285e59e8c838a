from .shared_fns import (SolverOptions, check_convergence, log_iter, log_result, convert_to_numpy,
                         rr_solver, solve_rachford_rice, wilson_k_values)
