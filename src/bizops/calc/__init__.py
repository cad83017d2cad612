"""Pure business arithmetic shared by services, workers and tests.

Nothing in this package touches the database or the network. Inputs are
ORM rows, mappings or plain values; outputs are plain values and dicts.
"""
