import importlib
import pkgutil
from pathlib import Path

import xglint

PKG_ROOT = Path(xglint.__file__).parent


def iter_submodules(pkg_name: str):
    """Yield all sub-modules of `pkg_name` (depth-first)."""
    pkg = importlib.import_module(pkg_name)
    for mod in pkgutil.walk_packages(pkg.__path__, f"{pkg_name}."):
        yield mod.name


def test_grid_layer_does_not_know_regridding():
    """
    The grid layer (xglint.grid.*) and the sparse helpers sit below the
    ice sheet layer and must never reference it.
    """
    bad_ref = "icesheet"
    for mod_name in iter_submodules("xglint"):
        if not (mod_name.startswith("xglint.grid") or mod_name == "xglint.sparse"):
            continue
        source = importlib.import_module(mod_name).__dict__.get("__file__", "")
        if not source or not source.endswith(".py"):
            continue
        text = Path(source).read_text()
        assert bad_ref not in text, f"{mod_name} references {bad_ref}"


def test_public_names_resolve():
    for name in xglint.__all__:
        assert getattr(xglint, name) is not None
    import xglint.grid as grid

    for name in grid.__all__:
        assert getattr(grid, name) is not None


def test_top_level_names_come_from_grid_package():
    import xglint.grid as grid

    for name in ("Grid", "Proj2", "make_xy_grid", "make_lonlat_grid", "read_grid"):
        assert getattr(xglint, name) is getattr(grid, name)
