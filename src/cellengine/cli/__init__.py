"""cell-engine CLI.

Usage:
    cell-engine replay events.jsonl     Feed captured events through the kernel
    cell-engine predict                 Predict from the stored event log
    cell-engine patterns top            Show the most frequent patterns
    cell-engine workflows list          List recorded workflows
    cell-engine workflows run <id>      Execute a workflow
"""

from cellengine.cli.main import app, main

__all__ = ["app", "main"]
