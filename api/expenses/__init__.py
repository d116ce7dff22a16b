"""
Expense records: schemas, SQL repository, service and HTTP routes.
"""
