from .phase_diagram import PhaseDiagram, PhaseDiagramHetero
