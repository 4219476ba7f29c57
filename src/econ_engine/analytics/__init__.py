"""
Analytics
=========
Estimation, financial metrics, risk analysis and result comparison.
"""
