"""
EspaceStage
An internship marketplace connecting students, companies and administrators.

Architecture:
- PostgreSQL: Structured data (accounts, profiles, offers, applications)
- MongoDB GridFS: Uploaded documents (photos, CVs, certificates, logos)
- Resend: Email notifications on new and decided applications
"""

__version__ = "1.0.0"
