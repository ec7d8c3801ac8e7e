import time
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, NamedTuple, Optional

from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import declarative_base

from shared.state_machine import PaymentStatus

Base = declarative_base()

TABLE_NAME = 'registrations'

# Columns dropped from the physical layout; tolerated on read, never written.
DEPRECATED_COLUMNS = ('jerseyNumber', 'jerseySize', 'category')

# File-path fields whose files are owned by the registration.
EVIDENCE_FIELDS = ('payment_screenshot', 'passport_photo', 'screenshot', 'aadhaar')


class FieldSpec(NamedTuple):
    attr: str
    column: str
    key: str


# attribute name, physical column name, external (API) key
FIELD_SPECS = (
    FieldSpec('id', 'id', 'id'),
    FieldSpec('team_name', 'teamName', 'teamName'),
    FieldSpec('player_name', 'playerName', 'playerName'),
    FieldSpec('player_mobile', 'playerMobile', 'playerMobile'),
    FieldSpec('player_email', 'playerEmail', 'playerEmail'),
    FieldSpec('player_role', 'playerRole', 'playerRole'),
    FieldSpec('screenshot', 'screenshot', 'screenshot'),
    FieldSpec('aadhaar', 'aadhaar', 'aadhaar'),
    FieldSpec('passport_photo', 'passport_photo', 'passportPhoto'),
    FieldSpec('payment_screenshot', 'payment_screenshot', 'paymentScreenshot'),
    FieldSpec('payment_status', 'payment_status', 'paymentStatus'),
    FieldSpec('created_at', 'created_at', 'createdAt'),
)

_ALIASES: Dict[str, str] = {}
for _spec in FIELD_SPECS:
    _ALIASES[_spec.attr] = _spec.attr
    _ALIASES[_spec.column] = _spec.attr
    _ALIASES[_spec.key] = _spec.attr


class RegistrationRow(Base):
    """Canonical physical layout of the embedded store."""
    __tablename__ = TABLE_NAME
    __table_args__ = {'sqlite_autoincrement': True}

    id = Column(Integer, primary_key=True)
    team_name = Column('teamName', Text)
    player_name = Column('playerName', Text)
    player_mobile = Column('playerMobile', Text)
    player_email = Column('playerEmail', Text)
    player_role = Column('playerRole', Text)
    screenshot = Column('screenshot', Text)
    aadhaar = Column('aadhaar', Text)
    passport_photo = Column('passport_photo', Text)
    payment_screenshot = Column('payment_screenshot', Text)
    payment_status = Column('payment_status', Text, server_default=PaymentStatus.PENDING.value)
    created_at = Column('created_at', Integer)


registrations_table = RegistrationRow.__table__


def now_millis() -> int:
    return int(time.time() * 1000)


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


@dataclass
class Registration:
    """
    One participant's submission.

    Absent values are always ``None``; blank strings are normalised to
    ``None`` so both backends store and return the same thing.
    """
    id: Optional[int] = None
    team_name: Optional[str] = None
    player_name: Optional[str] = None
    player_mobile: Optional[str] = None
    player_email: Optional[str] = None
    player_role: Optional[str] = None
    screenshot: Optional[str] = None
    aadhaar: Optional[str] = None
    passport_photo: Optional[str] = None
    payment_screenshot: Optional[str] = None
    payment_status: Optional[str] = None
    created_at: Optional[int] = None

    def __post_init__(self):
        for f in fields(self):
            setattr(self, f.name, _clean(getattr(self, f.name)))
        if self.payment_status is not None:
            self.payment_status = str(getattr(self.payment_status, 'value', self.payment_status))
        if self.id is not None:
            self.id = int(self.id)
        if self.created_at is not None:
            self.created_at = int(self.created_at)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Registration':
        """Build a record from attribute, column or API keys; unknown keys are ignored."""
        values = {}
        for key, value in data.items():
            attr = _ALIASES.get(key)
            if attr is not None:
                values[attr] = value
        return cls(**values)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Registration':
        return cls.from_mapping(row)

    def with_defaults(self, now: Optional[int] = None) -> 'Registration':
        """Copy with the insert-time defaults applied; ``id`` is left to the backend."""
        return replace(
            self,
            id=None,
            payment_status=self.payment_status or PaymentStatus.PENDING.value,
            created_at=self.created_at if self.created_at is not None else (now or now_millis()),
        )

    def to_row(self, include_id: bool = False) -> Dict[str, Any]:
        """Physical column name -> value."""
        row = {}
        for spec in FIELD_SPECS:
            if spec.attr == 'id' and not include_id:
                continue
            row[spec.column] = getattr(self, spec.attr)
        return row

    def to_dict(self) -> Dict[str, Any]:
        return {spec.key: getattr(self, spec.attr) for spec in FIELD_SPECS}

    def evidence_files(self) -> Dict[str, str]:
        """Populated evidence fields, in deletion order."""
        return {name: getattr(self, name) for name in EVIDENCE_FIELDS if getattr(self, name)}

    @property
    def status(self) -> PaymentStatus:
        try:
            return PaymentStatus(self.payment_status)
        except ValueError:
            return PaymentStatus.PENDING
