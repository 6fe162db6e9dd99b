"""
Edge route modules, one per serverless function.
"""
