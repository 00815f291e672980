"""
Data contracts and CSV input for the OPSD time-series dataset.

Defines the RawTable and Record shapes, the dataset error taxonomy, and the
single reader that turns CSV bytes into a RawTable.
"""
