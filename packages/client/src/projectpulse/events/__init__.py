"""Server event catalogue and wire decoding.

Learn: The server broadcasts one JSON frame per successful mutation:
    {"type": "TASK_UPDATED", "payload": {...the task row...}}

events.types names every event the server can send; events.message turns a
raw text frame into a validated EventMessage (or rejects it).
"""
