#!/usr/bin/env python3
"""
Reset a user's password in the marketplace SQLite database.

The script never reads or reveals the existing password; it only
stores a new PBKDF2 hash for the given e‑mail.  Optionally the account
can be re‑enabled at the same time.

Usage:
    python reset_password.py --db ./microjob.db --email admin@example.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sqlite3
import sys

from microjob_api.app.core.db import to_timestamp, utcnow
from microjob_api.app.core.security import hash_password


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset a marketplace user's password (SQLite).")
    ap.add_argument("--db", required=True, help="Path to the SQLite DB file (e.g. ./microjob.db)")
    ap.add_argument("--email", required=True, help="User email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    ap.add_argument("--enable", action="store_true", help="Also clear the account's disabled flag")
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        sys.exit(1)

    email = args.email.strip().lower()
    conn = sqlite3.connect(args.db)
    try:
        row = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
        if not row:
            print(f"[!] No user found with email: {email}", file=sys.stderr)
            sys.exit(2)

        query = "UPDATE users SET password = ?, updated_at = ?"
        if args.enable:
            query += ", disabled = 0"
        conn.execute(query + " WHERE email = ?", (hash_password(new_password), to_timestamp(utcnow()), email))
        conn.commit()
        print(f"[+] Password updated for user: {email}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
