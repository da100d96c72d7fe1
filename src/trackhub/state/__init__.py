"""Per-source pipeline state.

Holds the pending batch of each source and the ERP endpoint selection. The
cycle in :mod:`trackhub.jobs.cycle` is the only writer.
"""
