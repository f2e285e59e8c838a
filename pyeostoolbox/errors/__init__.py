from .errors import (EosError, InvalidState, IncompatibleComponents, ParameterError, DomainError,
                     ConvergenceFailure, IterationFailed, StabilityInconclusive, TrivialSolution,
                     SuperCritical, NoPhaseSplit)
