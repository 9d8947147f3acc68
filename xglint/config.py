from __future__ import annotations

"""YAML-driven grid definitions.

Example ``searise.yaml``::

    name: searise
    projection: "+proj=stere +lon_0=-39 +lat_0=90 +lat_ts=71.0 +ellps=WGS84"
    parameterization: L0
    x: {start: -800000.0, stop: 700000.0, step: 5000.0}
    y: {start: -3400000.0, stop: -600000.0, step: 5000.0}
    output:
      vname: grid
      format: NETCDF4
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .grid.builders import make_xy_grid, xy_boundaries
from .grid.enums import Parameterization
from .grid.grid_obj import Grid
from .io.grid_nc import write_grid_nc

__all__ = ["AxisConfig", "NcOptions", "XYGridConfig"]

_NC_FORMATS = {"NETCDF4", "NETCDF4_CLASSIC", "NETCDF3_64BIT_OFFSET", "NETCDF3_CLASSIC"}


@dataclass
class AxisConfig:
    """Cell boundaries ``start, start+step, ..., stop`` along one axis."""

    start: float
    stop: float
    step: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], axis: str) -> "AxisConfig":
        try:
            return cls(
                start=float(data["start"]),
                stop=float(data["stop"]),
                step=float(data["step"]),
            )
        except KeyError as exc:
            raise ValueError(f"Axis {axis!r} missing key {exc.args[0]!r}") from None

    def boundaries(self):
        return xy_boundaries(self.start, self.stop, self.step)


@dataclass
class NcOptions:
    """How a grid is written to netCDF."""

    vname: str = "grid"
    format: str = "NETCDF4"

    def __post_init__(self) -> None:
        if self.format not in _NC_FORMATS:
            raise ValueError(
                f"Unknown netCDF format {self.format!r}; expected one of "
                + ", ".join(sorted(_NC_FORMATS))
            )
        if not self.vname:
            raise ValueError("vname must not be empty")


@dataclass
class XYGridConfig:
    """Definition of a regular planar grid."""

    name: str
    projection: str
    x: AxisConfig
    y: AxisConfig
    parameterization: Parameterization = Parameterization.L0
    output: NcOptions = field(default_factory=NcOptions)

    def __post_init__(self) -> None:
        self.parameterization = Parameterization.parse(self.parameterization)
        if not self.projection:
            raise ValueError(f"Grid {self.name!r}: projection is required")

    # ------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "XYGridConfig":
        missing = [k for k in ("name", "projection", "x", "y") if k not in data]
        if missing:
            raise ValueError("Grid config missing keys: " + ", ".join(missing))
        return cls(
            name=str(data["name"]),
            projection=str(data["projection"]),
            x=AxisConfig.from_mapping(data["x"], "x"),
            y=AxisConfig.from_mapping(data["y"], "y"),
            parameterization=data.get("parameterization", Parameterization.L0),
            output=NcOptions(**(data.get("output") or {})),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "XYGridConfig":
        path = Path(path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(path)
        with path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        if not isinstance(data, Mapping):
            raise ValueError(f"{path}: top level must be a mapping")
        return cls.from_mapping(data)

    # ------------------------------------------------------------------
    def build(self) -> Grid:
        """Realize every cell of the configured grid."""
        return make_xy_grid(
            self.x.boundaries(),
            self.y.boundaries(),
            sproj=self.projection,
            name=self.name,
            parameterization=self.parameterization,
        )

    def write(self, path: str | Path) -> Path:
        """Build the grid and write it as configured under ``output``."""
        return write_grid_nc(
            self.build(), path, self.output.vname, format=self.output.format
        )
