"""
natcmd: natural-language command resolver and dispatcher.

Free text goes in, one structured action comes out and is executed through
an effector. See natcmd.core.orchestrator.handle_natural for the pipeline.
"""

__version__ = "0.1.0"
