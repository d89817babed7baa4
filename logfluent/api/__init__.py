"""
LogFluent Insight - HTTP API
"""
