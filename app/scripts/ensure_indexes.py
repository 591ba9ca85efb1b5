"""
Create the indexes the employee search relies on.
Run once per environment:  python -m app.scripts.ensure_indexes
"""
import asyncio

from app.utils.mongo import create_mongo_client, ensure_employee_indexes


async def ensure_indexes():
    client, _db, employees = create_mongo_client()
    try:
        print("=" * 60)
        print(f"EMPLOYEE INDEXES ({employees.full_name})")
        print("=" * 60)
        await ensure_employee_indexes(employees)
        info = await employees.index_information()
        for name, index in sorted(info.items()):
            print(f"  ✓ {name}: {index.get('key')}")
        print(f"\n  {len(info)} indexes present")
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(ensure_indexes())
