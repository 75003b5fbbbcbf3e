#!/usr/bin/env python3
"""Person/Invoice Demo

Saves a person and a few invoices, then looks them up by unique property
and by indexed property.

Usage:
    python demo/person_invoice.py --db-path example-person-invoice.db
    python demo/person_invoice.py --in-memory --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from entity_db import DbConfig, EntityDb, EntityDefinition

# What your data looks like. Each definition needs at least one unique property.
PERSON = EntityDefinition(
    id="person",
    unique_properties=["email"],
)
INVOICE = EntityDefinition(
    id="invoice",
    unique_properties=["invoiceNumber"],
    indexed_property_chains=[["customerEmail"]],
)


async def run_demo(args: argparse.Namespace) -> None:
    """Run the demo against the configured store."""
    db = EntityDb(
        DbConfig(
            entity_definitions={"person": PERSON, "invoice": INVOICE},
            db_file_path=None if args.in_memory else args.db_path,
        )
    )
    if args.clear:
        await db.clear_all_entities()

    alice = {"email": "alice@example.com", "name": "Alice"}
    await db.save("person", alice)
    for number in range(1, args.invoices + 1):
        await db.save(
            "invoice",
            {"invoiceNumber": str(number), "customerEmail": alice["email"], "amount": 100 * number},
        )

    alice_from_db = await db.find("person", "email", "alice@example.com")
    print(f"alice_from_db: {alice_from_db}")

    invoices_for_alice = await db.find_all("invoice", [("customerEmail", "alice@example.com")])
    print(f"invoices_for_alice ({len(invoices_for_alice)}):")
    for inv in invoices_for_alice:
        print(f"  {inv}")


def main() -> None:
    parser = argparse.ArgumentParser(description="EntityDb person/invoice demo")
    parser.add_argument("--db-path", default="example-person-invoice.db", help="Store directory")
    parser.add_argument("--in-memory", action="store_true", help="Use the in-memory default store")
    parser.add_argument("--invoices", type=int, default=2, help="Number of invoices to save")
    parser.add_argument("--clear", action="store_true", help="Clear all entities before saving")
    parser.add_argument("--verbose", action="store_true", help="Log store activity")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    asyncio.run(run_demo(args))


if __name__ == "__main__":
    main()
