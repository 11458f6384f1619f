"""
Imperva export CLI entry point.

Usage:
    python -m imperva_export export --caid 12345
    python -m imperva_export auto --caid 12345
"""

from imperva_export.cli import main

if __name__ == "__main__":
    main()
