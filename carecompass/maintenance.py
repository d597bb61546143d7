"""
Maintenance commands

    carecompass-admin migrate --source db.json
    carecompass-admin create-missing-patients
    carecompass-admin verify
    carecompass-admin serve --port 3000

migrate and create-missing-patients write into the configured store
(STORAGE_BACKEND, normally 'mongo' when migrating).
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

# .env must be loaded before config reads the environment
load_dotenv()

from carecompass.core import config
from carecompass.database import JsonFileStore, Store, create_store
from carecompass.services import utils
from carecompass.services.aggregation import format_date_time

logger = logging.getLogger("carecompass.maintenance")

SAMPLE_SIZE = 3


def migrate(source: Store, target: Store, now_ms: Optional[int] = None) -> Dict[str, int]:
    """
    Copy everything from source into target

    Users, patients and share links are upserted so the migration can be
    re-run; logs and notes are bulk inserted. Only unexpired sessions move.
    Returns how many records of each kind were written.
    """
    now = now_ms if now_ms is not None else utils.now_ms()
    migrated = {}

    for role, collection in (("doctor", "doctors"), ("caregiver", "caregivers")):
        users = source.list_users(role)
        count = 0
        for user in users:
            try:
                target.upsert_user(user)
                count += 1
            except Exception as e:
                logger.error(f"Error migrating {role} {user.get('email')}: {e}")
        migrated[collection] = count
        logger.info(f"Migrated {count}/{len(users)} {collection}")

    patients = source.list_patients()
    count = 0
    for patient in patients:
        try:
            target.upsert_patient(patient)
            count += 1
        except Exception as e:
            logger.error(f"Error migrating patient {patient.get('id')}: {e}")
    migrated["patients"] = count
    logger.info(f"Migrated {count}/{len(patients)} patients")

    migrated["logs"] = target.insert_logs(source.list_logs())
    logger.info(f"Migrated {migrated['logs']} logs")
    migrated["clinicianNotes"] = target.insert_notes(source.list_notes())
    logger.info(f"Migrated {migrated['clinicianNotes']} clinician notes")

    links = source.list_share_links()
    for patient_id, link in links.items():
        target.put_share_link(patient_id, link)
    migrated["shareLinks"] = len(links)
    logger.info(f"Migrated {len(links)} share links")

    count = 0
    for token, session in source.list_sessions().items():
        if session.get("expiresAt", 0) >= now:
            target.put_session(token, session)
            count += 1
    migrated["sessions"] = count
    logger.info(f"Migrated {count} active sessions")

    return migrated


def create_missing_patients(store: Store) -> list:
    """
    Add a bare {id} patient for every patient id that only appears in logs
    """
    created = []
    for patient_id in store.log_patient_ids():
        if store.get_patient(patient_id) is None:
            store.insert_patient({"id": patient_id})
            created.append(patient_id)
            logger.info(f"Created patient document for: {patient_id}")
    return created


def verification_report(store: Store) -> str:
    """
    Per-collection counts plus a few sample records
    """
    counts = store.counts()
    lines = ["Data verification report", "=" * 50, "", "Collection counts:"]
    for name, count in counts.items():
        lines.append(f"  {name:<16}{count}")

    lines += ["", "Sample data:", "-" * 50]
    for role in ("doctor", "caregiver"):
        users = store.list_users(role)[:SAMPLE_SIZE]
        if users:
            lines.append(f"{role.title()}s:")
            lines += [f"  {i}. {u.get('name')} ({u.get('email')}) - {u.get('role')}" for i, u in enumerate(users, 1)]
    patients = store.list_patients()[:SAMPLE_SIZE]
    if patients:
        lines.append("Patients:")
        lines += [f"  {i}. Patient ID: {p.get('id')}" for i, p in enumerate(patients, 1)]
    logs = store.list_logs()[:SAMPLE_SIZE]
    if logs:
        lines.append("Logs:")
        lines += [
            f"  {i}. Patient: {l.get('patientId')}, Mood: {l.get('mood') or 'N/A'}, Date: {format_date_time(l['createdAt'])}"
            for i, l in enumerate(logs, 1)
        ]
    notes = store.list_notes()[:SAMPLE_SIZE]
    if notes:
        lines.append("Clinician notes:")
        lines += [f"  {i}. Patient: {n.get('patientId')}, Note: {(n.get('note') or '')[:50]}" for i, n in enumerate(notes, 1)]
    return "\n".join(lines)


def cmd_migrate(args: argparse.Namespace) -> int:
    source_path = Path(args.source)
    if not source_path.exists():
        print(f"{source_path} not found. Nothing to migrate.")
        return 0
    target = create_store(args.backend)
    try:
        migrated = migrate(JsonFileStore(str(source_path)), target)
    finally:
        target.close()
    print("Migration completed:")
    for name, count in migrated.items():
        print(f"  {name:<16}{count}")
    print(f"Note: {source_path} has been kept as backup.")
    return 0


def cmd_create_missing_patients(args: argparse.Namespace) -> int:
    store = create_store(args.backend)
    try:
        created = create_missing_patients(store)
        total = len(store.list_patients())
    finally:
        store.close()
    print(f"Created {len(created)} new patient documents")
    print(f"Total patients: {total}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    store = create_store(args.backend)
    try:
        if not store.ping():
            print("Store is not reachable", file=sys.stderr)
            return 1
        print(verification_report(store))
    finally:
        store.close()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn
    uvicorn.run("carecompass.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="carecompass-admin", description="CareCompass maintenance commands")
    p.add_argument("--backend", choices=["json", "mongo"], default=None,
                   help="Store to operate on (default: STORAGE_BACKEND)")
    sub = p.add_subparsers(dest="command", required=True)

    migrate_p = sub.add_parser("migrate", help="Copy a db.json file into the configured store")
    migrate_p.add_argument("--source", default=config.DB_FILE, help="JSON file to read (default: DB_FILE)")
    migrate_p.set_defaults(func=cmd_migrate)

    sub.add_parser("create-missing-patients", help="Create patients referenced only by logs") \
        .set_defaults(func=cmd_create_missing_patients)
    sub.add_parser("verify", help="Print collection counts and sample records").set_defaults(func=cmd_verify)

    serve_p = sub.add_parser("serve", help="Run the API server")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=config.PORT)
    serve_p.add_argument("--reload", action="store_true")
    serve_p.set_defaults(func=cmd_serve)
    return p


def main(argv=None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
