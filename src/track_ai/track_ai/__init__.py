"""Track AI field-operations backend.

Feature modules (attendance, uploads, progress, projects, users) sit on top of
the Saras integration layer in `track_ai.saras`, with a thin Flask controller
layer and service/repository layers underneath.
"""
