"""
gitdiffy: automatic, well-scoped commits for a local Git repository.

Key Features:
    - Splits the pending changes into several commits, each with a generated
      message and its own set of files
    - Interactive mode that asks before every commit
    - Watch mode that commits on its own after a stretch of continuous work,
      on a dedicated branch that is pushed afterwards

Usage:
    $ gitdiffy --license KEY commit
    $ gitdiffy --license KEY --maxWorkDuration 15m watch
"""

__version__ = "1.0.0"
__author__ = "gitdiffy contributors"

__all__ = ["main_cli", "__version__", "__author__"]


def main_cli(argv=None) -> int:
    from gitdiffy.cli import main_cli as _main_cli

    return _main_cli(argv)
