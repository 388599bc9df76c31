#!/usr/bin/env python
"""Idempotent seed script for preset roles & the initial administrator.

Usage:
    python scripts/seed_portal.py               # seed normally
    python scripts/seed_portal.py --show-roles  # print role -> granted operation counts (after ensuring seed)
    python scripts/seed_portal.py --dry-run     # run logic then rollback (no DB changes)
    python scripts/seed_portal.py --export-json roles.json
    python scripts/seed_portal.py --validate    # exit 2 when a stored role document is not in normalized form
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json
from sqlalchemy import select

from portal import create_app, get_db
from portal.constants.permissions import ROLE_ADMIN, ROLE_PRESETS, preset_document
from portal.models.authz import Base, Role, User
from portal.services.permission_document import normalize
# Register every table before create_all
import portal.models.audit  # noqa: F401
import portal.models.product  # noqa: F401
import portal.models.order  # noqa: F401
import portal.models.meeting  # noqa: F401
import portal.models.market_report  # noqa: F401
import portal.models.payment  # noqa: F401
import portal.models.news  # noqa: F401
import portal.models.invoice_delivery  # noqa: F401


def ensure_roles(session):
    existing = {r.role_name for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for role_name in ROLE_PRESETS:
        if role_name in existing:
            continue
        session.add(Role(
            role_name=role_name,
            description=f'Preset role: {role_name}',
            permissions=normalize(preset_document(role_name)).to_dict(),
        ))
        created += 1
    session.flush()
    return created


def ensure_initial_admin(session):
    username = os.getenv('SEED_ADMIN_USERNAME', 'admin')
    email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing = session.execute(
        select(User).where((User.username == username) | (User.email == email))
    ).scalar_one_or_none()
    if existing:
        return False
    user = User(username=username, email=email, password_hash='', role=ROLE_ADMIN, first_name='Portal', last_name='Admin')
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    session.flush()
    print(f"[INFO] Created initial admin user {username} <{email}> with temporary password.")
    return True


def build_role_permission_map(session):
    mapping = {}
    for role in session.execute(select(Role).order_by(Role.role_name)).scalars().all():
        doc = normalize(role.permissions)
        mapping[role.role_name] = sorted(
            f'{m}.{op}' for m, ops in doc.to_dict().items() for op, granted in ops.items() if granted
        )
    return mapping


def print_role_summary(session):
    rows = build_role_permission_map(session)
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(name) for name in rows)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for name, codes in rows.items():
        print(f"{name.ljust(name_w)} | {str(len(codes)).rjust(5)} | {', '.join(codes[:8])}")


def find_problems(session):
    """Stored documents that differ from their normalized form (hand-edited rows)."""
    problems = []
    for role in session.execute(select(Role)).scalars().all():
        if role.permissions != normalize(role.permissions).to_dict():
            problems.append(f"Role '{role.role_name}' stores a non-normalized permission document")
    return problems


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed portal roles & initial administrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_portal.py\n  dry run: seed_portal.py --dry-run\n  show roles: seed_portal.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role operation counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role->granted operations JSON (to FILE or stdout if omitted)')
    p.add_argument('--validate', action='store_true', help='Check stored role documents are normalized; exits non-zero on problems')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        # Bootstrap schema when migrations have not run yet; prefer alembic upgrade
        Base.metadata.create_all(session.get_bind(), checkfirst=True)
        created_r = ensure_roles(session)
        ensure_initial_admin(session)
        if args.validate:
            problems = find_problems(session)
            if problems:
                print('\n[VALIDATION] FAIL:')
                for p in problems:
                    print(' -', p)
                session.rollback()
                sys.exit(2)
            print('[VALIDATION] OK: All role documents normalized.')
        if args.show_roles:
            print_role_summary(session)
        if args.export_json:
            payload = json.dumps(build_role_permission_map(session), indent=2)
            if args.export_json == '-':
                print(payload)
            else:
                with open(args.export_json, 'w', encoding='utf-8') as fh:
                    fh.write(payload)
                print(f"[INFO] Exported roles to {args.export_json}")
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Roles would create: {created_r}")
        else:
            session.commit()
            print(f"[DONE] Roles created: {created_r}")


if __name__ == '__main__':
    main()
