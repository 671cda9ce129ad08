"""
OncoGest core: data access, search and reporting for leftover
chemotherapy preparations, medication purchases and the drug catalog.
"""

__version__ = "1.0.0"
