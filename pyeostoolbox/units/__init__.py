from .units import (ureg, Q_, to_si, is_temperature, KELVIN, PASCAL, CUBIC_METER, MOL, MOL_PER_M3,
                    J, J_PER_MOL, J_PER_K, J_PER_MOL_K, KG, KG_PER_MOL)
