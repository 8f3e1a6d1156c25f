"""Freightline CLI: Typer-based command-line interface.

Provides the ``freightline`` command with subcommands for registering
Warehouses and Stages, publishing and approving Freight, recording
promotions and verifications, and querying availability and history.

All output uses Rich for formatted terminal display.
"""
