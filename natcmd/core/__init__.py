"""
natcmd.core

Normalizer, catalog, resolver cascade, dispatcher and the pipeline that ties
them together. Nothing in here talks to the OS directly; effectors live in
natcmd.tools.
"""
