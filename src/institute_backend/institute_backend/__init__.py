"""Institute backend package.

Organized by feature modules (auth, tenancy, attendance, fees, payroll, ...)
with a thin Flask controller layer over service/repository layers. Every
service works on a tenant-scoped view handed to it by the isolation guard.
"""
