# backend/portal/cli/__main__.py
from __future__ import annotations

import argparse

from portal.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m portal.cli")
    p.add_argument("--admin-email", default="admin@demo.local")
    p.add_argument("--tenant-email", default="tenant@demo.local")
    p.add_argument("--tenant-name", default="Demo Tenant")
    p.add_argument("--unit-label", default="1A")
    p.add_argument("--no-create-schema", action="store_true", help="assume alembic already ran")
    args = p.parse_args()

    out = seed_demo(
        admin_email=args.admin_email,
        tenant_email=args.tenant_email,
        tenant_name=args.tenant_name,
        unit_label=args.unit_label,
        create_schema=(not args.no_create_schema),
    )
    print(
        {
            "ok": True,
            "admin_email": out.admin_email,
            "tenant_email": out.tenant_email,
            "tenancy_id": out.tenancy_id,
            "checklist_set_id": out.checklist_set_id,
            "inspection_id": out.inspection_id,
        }
    )


if __name__ == "__main__":
    main()
