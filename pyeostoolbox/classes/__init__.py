from .classes import Contributions, DensityInitialization, Verbosity, IdentifierOption, IterationStatus, class_dic
