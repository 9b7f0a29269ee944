from .base import BaseAdapter, ReviewAdapter, run_cli_command

__all__ = ["BaseAdapter", "ReviewAdapter", "run_cli_command"]
