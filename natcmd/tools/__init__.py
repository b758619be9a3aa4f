"""
natcmd.tools

Effectors: the side-effecting capabilities the dispatcher drives. The
protocols live in natcmd.tools.effectors; the other modules are the Windows
implementations returned by build_default_effectors().
"""
from natcmd.tools.effectors import Effectors, build_default_effectors

__all__ = ["Effectors", "build_default_effectors"]
