"""
LogFluent Insight - Dashboard
=============================

Streamlit front end: upload, summary and chat screens.

Run with: streamlit run logfluent/dashboard/app.py
"""
