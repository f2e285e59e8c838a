from .eos import StateHD, HelmholtzEnergy, IdealGas, EquationOfState
