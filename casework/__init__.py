"""Case-management application for the careflow backend.

This package contains the models, services, serializers, views and
route registrations for the patient journey and the professional
account linking workflows.
"""
