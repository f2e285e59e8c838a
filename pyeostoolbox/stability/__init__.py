from .stability import stability_analysis, is_stable, tangent_plane_distance
