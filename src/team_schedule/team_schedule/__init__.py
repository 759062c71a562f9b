"""Team Schedule package.

Feature modules (categories, schedules, attendance, tuition, ...) with a thin
Flask controller layer over service/repository layers.
"""
