from .cubic import PengRobinsonRecord, PengRobinsonParameters, PengRobinsonContribution, PengRobinson
