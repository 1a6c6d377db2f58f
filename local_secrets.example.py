"""
Local secrets example.

Copy this file to `local_secrets.py` and fill in real values for local testing.
Make sure `local_secrets.py` is listed in .gitignore so it doesn't get committed.
"""

JOBS_API_KEY = "your_real_api_key_here"
JOBS_API_URL = "http://35.226.2.144/"
