"""
Pure transformation stages from a RawTable to line-protocol messages.

Column resolution, cutoff filtering, record extraction and line-protocol
encoding. Nothing in this package performs I/O or reads the wall clock; the
encode-time instant is passed in by the caller.
"""
