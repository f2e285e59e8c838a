from .parameter import Identifier, JobackRecord, PureRecord, BinaryRecord, Parameters
