"""Workforce System package.

This package is organized by feature modules (inventory, sales, payroll, ...)
with a thin Flask controller layer and service/repository layers. The daily
reconciliation job and the payroll calculator are the core; everything else
is a collaborator exposed through repository interfaces.
"""
