"""
Flow model, execution engine, result tracking and trigger dispatch.
"""
