"""
Seed Data Script - Creates the founding chancellor of a diocese

A diocese needs one sitting chancellor before anyone can approve
registrations; this script creates that account directly as active,
with its opening term record.

Run: python -m scripts.seed_data --diocese tagbilaran --email chancellor@example.org --name "Fr. Juan Dela Cruz"
"""
import argparse
import getpass

from chancery.config.settings import settings
from chancery.domain.models import StaffAccount, StaffScope, TermRecord
from chancery.domain.enums import StaffRole, StaffStatus, TermStatus
from chancery.repositories import get_repositories
from chancery.repositories.mongo_client import create_indexes
from chancery.services.identity_service import get_identity_provider
from chancery.utils.idgen import generate_term_id
from chancery.utils.logger import get_logger, setup_logging
from chancery.utils.time import utc_now

logger = get_logger(__name__)


def seed_founding_chancellor(staff_repo, identity_provider, diocese: str, email: str, name: str, password: str) -> StaffAccount:
    """Create an active chancellor and open their term, unless the seat is taken"""
    diocese = diocese.strip().lower()
    if diocese not in settings.dioceses_list:
        raise SystemExit(f"Unknown diocese '{diocese}'. Configured: {', '.join(settings.dioceses_list)}")

    seated = staff_repo.find_accounts(
        role=StaffRole.CHANCELLOR,
        diocese=diocese,
        statuses=[StaffStatus.ACTIVE, StaffStatus.INACTIVE]
    )
    if seated:
        print(f"Diocese {diocese} already has a chancellor ({seated[0].email}). Skipping seed.")
        return seated[0]

    identity_id = identity_provider.create_identity(email, password, name)
    now = utc_now()
    account = StaffAccount(
        staff_id=identity_id,
        email=email,
        name=name,
        role=StaffRole.CHANCELLOR,
        scope=StaffScope(diocese=diocese),
        status=StaffStatus.ACTIVE,
        registration_source="seed",
        term_start=now,
        approved_by="system",
        approved_by_name="System seed",
        approved_at=now,
        registered_at=now,
    )
    term = TermRecord(
        term_id=generate_term_id(),
        staff_id=identity_id,
        staff_name=name,
        staff_email=email,
        role=StaffRole.CHANCELLOR,
        scope=account.scope,
        term_start=now,
        status=TermStatus.ACTIVE,
        created_at=now,
    )

    def _write(session):
        staff_repo.insert_account(account, session=session)
        staff_repo.insert_term(term, session=session)

    try:
        staff_repo.run_in_transaction(_write)
    except Exception:
        identity_provider.delete_identity(identity_id)
        raise

    logger.info(f"Seeded founding chancellor {identity_id} for {diocese}", extra={"staff_id": identity_id, "diocese": diocese})
    print(f"Seeded chancellor {name} <{email}> for diocese {diocese} (staff_id={identity_id})")
    return account


def main():
    parser = argparse.ArgumentParser(description="Seed the founding chancellor of a diocese")
    parser.add_argument("--diocese", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    args = parser.parse_args()

    setup_logging()
    if settings.store_backend.lower() == "mongo":
        create_indexes()

    password = getpass.getpass("Initial password: ")
    staff_repo, _ = get_repositories()
    seed_founding_chancellor(staff_repo, get_identity_provider(), args.diocese, args.email, args.name, password)


if __name__ == "__main__":
    main()
