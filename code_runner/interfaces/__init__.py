"""
Interfaces Layer

Entry points: the host REST service and the terminal console.
"""
