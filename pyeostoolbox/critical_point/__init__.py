from .critical_point import critical_point, critical_point_pure, critical_point_binary
