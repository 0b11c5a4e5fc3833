"""
Domain Layer

Pure business logic for compiling, running and analyzing C/C++ submissions.
No dependencies on infrastructure or external frameworks.
"""
