"""Top-level package for the Expense Dashboard.

The primary modules are:

* ``ingestion`` – normalizing rows handed back by the hosted expense store
* ``bucketing`` – day/week/month/year partitioning of expenses
* ``aggregation`` – totals, category breakdowns and report builders
* ``insights`` / ``ai_tips`` – heuristic and AI generated daily tips
* ``tip_cache`` / ``tips_service`` – the cached tips request handler
* ``api`` – Flask JSON endpoints
* ``visualization`` / ``dashboard`` – Plotly figures and the Streamlit app

To run the dashboard from the command line you can execute:

```bash
streamlit run expense_dashboard/dashboard.py
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import bucketing  # noqa: F401  # re-exported for convenience
from . import insights  # noqa: F401  # re-exported for convenience

__all__ = ["aggregation", "bucketing", "insights"]
