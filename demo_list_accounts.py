# demo_list_accounts.py
# Version: v1

r"""
Quick smoke test: list Feedonomics accounts and the databases of the first one.

Run with virtualenv active and env vars loaded:
  export FEEDONOMICS_API_TOKEN=...
  python demo_list_accounts.py
"""

import asyncio

from fdx_client import FdxConfig, create_feedonomics_api
from fdx_client.models import Account


async def main() -> None:
    api = create_feedonomics_api(FdxConfig.from_env())

    result = await api.client.accounts()
    if not result.success:
        print(f"Listing accounts failed ({result.status}): {result.error}")
        return

    accounts = [Account.from_payload(item) for item in result.data or []]
    print("Accounts returned:", len(accounts))
    for a in accounts[:10]:
        print(f"- {a.account_name} (id={a.id})")

    if not accounts:
        return

    dbs = await api.client.dbs(accounts[0].id)
    print(f"Databases in {accounts[0].account_name}:", len(dbs.data or []) if dbs.success else dbs.error)


if __name__ == "__main__":
    asyncio.run(main())
