# Services package init
"""
NoteCraft — Services Package
=============================

    - note_service.py: Note CRUD scoped to a Principal (ownership predicate, validation)
"""
