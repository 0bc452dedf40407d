"""Entry point for ``python -m mathfunc_checker``."""

from mathfunc_checker.checkers import _main

if __name__ == "__main__":
    _main()
