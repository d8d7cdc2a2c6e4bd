"""Run reporting — read-only projections and Rich rendering.

Modules
-------
projection
    ``RunProjection`` rebuilds a ``RunSnapshot`` of a past run from the
    run ledger.
renderer
    ``SummaryRenderer`` turns a ``RunSummary`` or ``RunSnapshot`` into Rich
    panels for terminal display.
"""
