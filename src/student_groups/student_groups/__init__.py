"""Student Groups package.

Groups of students are defined by attendance-incident filters. The package is
organized by feature modules (groups, roll_records, filters, reconcile) with a
thin Flask controller layer over service/repository layers.
"""
