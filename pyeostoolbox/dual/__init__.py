from .dual import DualNumber, Dual, HyperDual, Dual3, log, exp, sqrt, powf, dsum, real_part, depth, is_finite
