"""
Mint a signed bearer token for local testing or a backend caller.

Usage:
    python scripts/issue_token.py <uid> [email] [--hours N]

Pass an email ending in SERVICE_ACCOUNT_EMAIL_SUFFIX to get a token that may
act on any user's progression.
"""
import sys
import os
from datetime import timedelta

# Add the parent directory to the path so we can import app modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.security import create_access_token


def issue_token(uid: str, email: str | None = None, hours: int = 24) -> str:
    claims = {"sub": uid}
    if email:
        claims["email"] = email
    return create_access_token(claims, expires_delta=timedelta(hours=hours))


if __name__ == "__main__":
    args = sys.argv[1:]
    hours = 24
    if "--hours" in args:
        i = args.index("--hours")
        hours = int(args[i + 1])
        del args[i:i + 2]

    if not args:
        print(__doc__)
        sys.exit(1)

    print(issue_token(args[0], args[1] if len(args) > 1 else None, hours))
