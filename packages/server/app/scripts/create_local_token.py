"""
Script to mint a bearer token for an identity, for local testing.
"""

import argparse
import os
import sys
from datetime import timedelta

# Add the project root to sys.path to allow importing from 'app'
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from app.core.auth import create_jwt


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a local Channel Hub bearer token")
    parser.add_argument("identity_id", help="Identity DID the token acts for, e.g. did:iota:1234")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime in minutes (default: CH_JWT_EXPIRE_MINUTES)",
    )
    args = parser.parse_args(argv)

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token, jti = create_jwt(args.identity_id, expires_delta=expires)
    print(f"Identity: {args.identity_id}")
    print(f"Token ID: {jti}")
    print(f"Authorization: Bearer {token}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
