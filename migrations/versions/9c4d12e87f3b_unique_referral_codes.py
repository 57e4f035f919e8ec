"""unique referral codes

Revision ID: 9c4d12e87f3b
Revises: 3b7e91c4d2a0
Create Date: 2025-07-14 09:41:08.220417

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '9c4d12e87f3b'
down_revision: Union[str, None] = '3b7e91c4d2a0'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One holder keeps each duplicated code, the others get an id suffix
    op.execute(
        "UPDATE profiles SET referral_code = referral_code || '-' || substr(CAST(id AS TEXT), 1, 4) "
        "WHERE referral_code IS NOT NULL AND EXISTS ("
        "SELECT 1 FROM profiles AS older WHERE older.referral_code = profiles.referral_code "
        "AND CAST(older.id AS TEXT) < CAST(profiles.id AS TEXT))"
    )
    op.drop_index('ix_profiles_referral_code', table_name='profiles')
    op.create_index('ix_profiles_referral_code', 'profiles', ['referral_code'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_profiles_referral_code', table_name='profiles')
    op.create_index('ix_profiles_referral_code', 'profiles', ['referral_code'])
