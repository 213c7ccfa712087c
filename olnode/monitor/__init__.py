"""Web monitor for a running node.

A background thread keeps a snapshot of node health and chain state fresh;
the FastAPI app only ever reads that snapshot.
"""
