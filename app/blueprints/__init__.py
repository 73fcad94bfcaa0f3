"""
Budget-Gated Project Workflow
Blueprint registry.

Each module exposes one ``Blueprint`` registered in ``app.create_app``.
Views parse the request, call a service and wrap the result with
``app.utils.errors.api_ok``; services raise and the app-level handlers
render the error envelope.
"""
