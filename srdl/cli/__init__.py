"""
Command-line interface: Typer app, Rich formatters and the live status line.
"""
