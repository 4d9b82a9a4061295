#!/usr/bin/env python3
"""
Create a tenant with its first TENANT_ADMIN and the default deduction catalog.

Usage:
    python scripts/bootstrap_tenant.py --tenant-code acme --tenant-name "PT Acme" \
        --admin-email admin@acme.co.id --admin-password secret123
    python scripts/bootstrap_tenant.py ... --superadmin-email root@example.com --superadmin-password secret123
    python scripts/bootstrap_tenant.py ... --create-tables   # local SQLite without migrations
"""
import argparse
import sys

from pph21_service.core.exceptions import Pph21Exception
from pph21_service.db.base_class import Base
from pph21_service.db.session import engine, session_scope
from pph21_service.models import hr_models, models, payroll_models, schemas  # noqa: F401  (register tables)
from pph21_service.services.master_data_service import MasterDataService
from pph21_service.services.tenant_service import TenantService


def bootstrap(args: argparse.Namespace) -> bool:
    if args.create_tables:
        Base.metadata.create_all(bind=engine)
    try:
        with session_scope() as db:
            tenant = TenantService(db).bootstrap(
                schemas.TenantCreate(code=args.tenant_code, name=args.tenant_name),
                schemas.TenantUserCreate(
                    email=args.admin_email,
                    name=args.admin_name,
                    password=args.admin_password,
                    role=models.TenantRole.TENANT_ADMIN,
                ),
                superadmin_email=args.superadmin_email,
                superadmin_password=args.superadmin_password,
            )
            components = MasterDataService(db).list_deduction_components(tenant.id)
            print(f"✅ Tenant ready: {tenant.code} (ID: {tenant.id})")
            print(f"   Admin: {args.admin_email}")
            print(f"   Deduction components: {', '.join(c.code for c in components)}")
    except (Pph21Exception, ValueError) as e:
        print(f"❌ Error: {e}")
        return False
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Bootstrap a payroll tenant")
    parser.add_argument("--tenant-code", required=True, help="Unique tenant code")
    parser.add_argument("--tenant-name", required=True, help="Display name of the tenant")
    parser.add_argument("--admin-email", required=True, help="Email of the first tenant admin")
    parser.add_argument("--admin-password", help="Password, required when the admin is a new user")
    parser.add_argument("--admin-name", help="Admin display name")
    parser.add_argument("--superadmin-email", help="Also ensure a platform superadmin with this email")
    parser.add_argument("--superadmin-password", help="Password for a new superadmin")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")

    success = bootstrap(parser.parse_args())
    sys.exit(0 if success else 1)
