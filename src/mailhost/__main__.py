#!/usr/bin/env python3
"""
Allow running mailhost as a module: python -m mailhost

This enables the following usage:
    python -m mailhost [OPTIONS] user@domain

Which is equivalent to:
    mailhost [OPTIONS] user@domain
"""

from mailhost.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
