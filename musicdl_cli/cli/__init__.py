"""
Terminal Interface Layer.

This package contains the Typer application, the wizard's session loop and
the Rich rendering of its screens.
"""
