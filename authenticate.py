#!/usr/bin/env python3
"""
Sign Microsoft accounts in for use with M365 Tasks MCP.
Run this once before starting the server so tools can acquire tokens silently.
"""

import argparse
import os
import sys
from pathlib import Path

# Allow running from a source checkout without installing
sys.path.insert(0, str(Path(__file__).parent / "src"))

from dotenv import load_dotenv


def _parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Authenticate Microsoft accounts for M365 Tasks MCP"
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to .env file (default: .env)",
    )
    return parser.parse_args()


def _print_accounts(accounts, heading: str) -> None:
    print(heading)
    for i, account in enumerate(accounts, 1):
        print(f"{i}. {account.username} (ID: {account.account_id})")
    print()


def main():
    args = _parse_arguments()

    if args.env_file.exists():
        load_dotenv(dotenv_path=args.env_file)
        print(f"Loaded environment from: {args.env_file}\n")
    else:
        print(f"Warning: Environment file not found: {args.env_file}")
        print("Continuing with system environment variables...\n")

    from m365_tasks_mcp import auth
    from m365_tasks_mcp.exceptions import AuthenticationError

    if not os.getenv("M365_TASKS_MCP_CLIENT_ID"):
        print("Error: M365_TASKS_MCP_CLIENT_ID environment variable is required")
        print("\nSet it in your .env file or environment:")
        print("export M365_TASKS_MCP_CLIENT_ID='your-app-id'")
        sys.exit(1)

    print("M365 Tasks MCP Authentication")
    print("=============================\n")

    accounts = auth.list_accounts()
    if accounts:
        _print_accounts(accounts, "Currently authenticated accounts:")
    else:
        print("No accounts currently authenticated.\n")

    while True:
        choice = input("Do you want to authenticate a new account? (y/n): ").lower()
        if choice == "n":
            break
        if choice != "y":
            print("Please enter 'y' or 'n'")
            continue

        try:
            new_account = auth.authenticate_new_account()
        except AuthenticationError as e:
            print(f"\nAuthentication failed: {e}")
            continue

        if new_account:
            print("\nAuthentication successful!")
            print(f"Signed in as: {new_account.username}")
            print(f"Account ID: {new_account.account_id}\n")
        else:
            print("\nAuthentication failed: Could not retrieve account information\n")

    accounts = auth.list_accounts()
    if accounts:
        _print_accounts(accounts, "\nAuthenticated accounts summary:")
        print("Pass an account ID as account_id to the task tools, e.g.")
        print("find-todo-task(title='...', account_id='<account-id>')")
    else:
        print("\nNo accounts authenticated.")


if __name__ == "__main__":
    main()
