"""Library Circulation - Core Application Package

This package contains the core application modules including:
- Data models (book.py, member.py)
- Circulation logic (library.py, fees.py)
- Error kinds (errors.py)
- API endpoints (api.py)
- CLI interface (main.py)
"""

__version__ = "1.0.0"
