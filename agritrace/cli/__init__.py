"""AgriTrace CLI - Typer-based command-line interface.

Provides the ``agritrace`` command with subcommands for running workflows,
running a demo, and inspecting the Local Ledger and the verification
directory.

All output uses Rich for formatted terminal display.
"""
