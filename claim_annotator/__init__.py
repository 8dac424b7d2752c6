"""
Claim Annotator - medical-insurance report highlighting.

This package provides:
- Row reconstruction from the text stream of four report layouts
- Billing condition rules (7+ visit days, hospitalization, surgery, 30+ drug days)
- Highlighted PDF output with summary box, type tabs and margin bars
- Spreadsheet export of the rows behind a condition
- FastAPI endpoints over a SQLAlchemy document store
"""

__version__ = "1.0.0"
