"""School Leave package.

Leave applications, yearly quotas and balances for students and teachers,
organized by feature modules (quotas, balances, applications, processing)
with a thin Flask controller layer over service/repository layers.
"""
