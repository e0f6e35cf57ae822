"""
QR Payload Codec

Turns attendees into deterministic QR payload strings and scanned payloads
back into attendee keys. Three payload shapes exist in the wild:

* plain: the opaque attendee code (or an email) on its own
* json: a small JSON object
* labeled: the legacy multi-line block printed on early badges, e.g.::

    === REGISTRO DE EVENTO ===
    Nombre: Ana Pérez
    Correo: ana@example.org
    País: Honduras
    Tipo de organización: Gobierno
    Evento a participar: CUMBRE
    Participa en: CUMBRE, DIGI AMERICAS (DESAYUNO)

Decoding dispatches by shape: JSON object first, then labeled lines, then
the raw string as an identifier.
"""
import json
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from io import BytesIO

import qrcode

from qrcheckin.config import settings
from qrcheckin.exceptions import DecodeError, ValidationError
from qrcheckin.models import Attendee
from qrcheckin.utils.text import normalize_label, split_event_labels

MAX_IDENTIFIER_LENGTH = 255
PAYLOAD_VERSION = 1

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


class PayloadFormat(str, Enum):
    PLAIN = "plain"
    JSON = "json"
    LABELED = "labeled"


class KeyKind(str, Enum):
    CODE = "code"
    EMAIL = "email"


@dataclass(frozen=True)
class AttendeeKey:
    """The identifier used to resolve an attendee."""

    kind: KeyKind
    value: str


@dataclass(frozen=True)
class PayloadFields:
    code: str = ""
    email: str = ""
    name: str = ""
    country: str = ""
    organization: str = ""
    organization_type: str = ""
    main_event: str = ""
    events: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class QRPayload:
    """A decoded payload tagged with the shape it was decoded from."""

    format: PayloadFormat
    fields: PayloadFields

    @property
    def key(self) -> AttendeeKey:
        if self.fields.code:
            return AttendeeKey(KeyKind.CODE, self.fields.code)
        if self.fields.email:
            return AttendeeKey(KeyKind.EMAIL, self.fields.email)
        # Decoders never build a payload without a key
        raise DecodeError(payload_format=self.format.value)

    def to_dict(self) -> dict:
        data = asdict(self.fields)
        data["events"] = list(self.fields.events)
        return {"format": self.format.value, "fields": data}


# Localized labels of the legacy format, compared after normalize_label()
LABELS = {
    "name": ("NOMBRE", "NOMBRE COMPLETO", "NAME", "FULL NAME"),
    "email": ("CORREO", "CORREO ELECTRONICO", "EMAIL", "E-MAIL", "MAIL"),
    "country": ("PAIS", "COUNTRY"),
    "organization": ("ORGANIZACION", "ORGANIZATION", "ORGANISATION"),
    "organization_type": (
        "TIPO DE ORGANIZACION",
        "ORGANIZATION TYPE",
        "ORGANISATION TYPE",
    ),
    "main_event": ("EVENTO A PARTICIPAR", "EVENTO", "EVENT", "MAIN EVENT"),
    "events": ("PARTICIPA EN", "EVENTOS", "EVENTS", "REGISTERED EVENTS"),
    "code": ("CODIGO", "CODE", "ID", "QR", "TOKEN"),
}
_LABEL_LOOKUP = {label: name for name, labels in LABELS.items() for label in labels}

# Printed labels used by encode(); the first localized variant. Key lines lead.
_ENCODE_LABELS = (
    ("code", "Código"),
    ("email", "Correo"),
    ("name", "Nombre"),
    ("country", "País"),
    ("organization_type", "Tipo de organización"),
    ("events", "Participa en"),
)

# JSON keys accepted on decode, including the original Spanish names
JSON_KEYS = {
    "code": ("code", "qr_code", "qr", "identifier", "token", "codigo"),
    "email": ("email", "correo"),
    "name": ("name", "display_name", "nombre", "nombreCompleto"),
    "country": ("country", "pais"),
    "organization": ("organization", "organizacion"),
    "organization_type": ("organization_type", "tipoOrganizacion", "tipo_organizacion"),
    "main_event": ("main_event", "eventoPrincipal", "evento_principal"),
    "events": ("events", "eventosMarcados", "eventos_marcados", "registered_events"),
}


def encode(attendee: Attendee, fmt: PayloadFormat | str | None = None) -> str:
    """
    Produce the QR payload for an attendee.

    The result only depends on the attendee's stored fields, so it can be used
    as a cache key for a pre-rendered image.
    """
    fmt = PayloadFormat(fmt or settings.get("QR_PAYLOAD_FORMAT", "plain"))

    if not attendee.qr_code and not attendee.email:
        raise ValidationError(
            "Attendee has neither a QR code nor an email to encode",
            field="qr_code",
        )

    events = split_event_labels(attendee.registered_events)

    if fmt is PayloadFormat.PLAIN:
        return attendee.qr_code or attendee.email

    if fmt is PayloadFormat.JSON:
        document = {
            "v": PAYLOAD_VERSION,
            "code": attendee.qr_code,
            "email": attendee.email,
            "name": attendee.display_name,
            "country": attendee.country,
            "organization_type": attendee.organization_type,
            "events": events,
        }
        return json.dumps(
            {k: v for k, v in document.items() if v not in (None, "", [])},
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )

    values = {
        "code": attendee.qr_code,
        "name": attendee.display_name,
        "email": attendee.email,
        "country": attendee.country,
        "organization_type": attendee.organization_type,
        "events": ", ".join(events),
    }
    lines = ["=== REGISTRO DE EVENTO ==="]
    lines += [
        f"{label}: {_single_line(values[name])}"
        for name, label in _ENCODE_LABELS
        if values[name]
    ]
    return "\n".join(lines)


def _single_line(value: str) -> str:
    # Each value stays on its own label line
    return " ".join(part.strip() for part in str(value).splitlines() if part.strip())


def decode(raw: str | None) -> QRPayload:
    """Decode a scanned payload, trying JSON, then labeled lines, then plain."""
    if raw is None or not str(raw).strip():
        raise DecodeError("QR payload is empty")

    text = str(raw).strip()

    payload = _decode_json(text)
    if payload is not None:
        return payload

    payload = _decode_labeled(text)
    if payload is not None:
        return payload

    return _decode_plain(text)


def _decode_json(text: str) -> QRPayload | None:
    if not text.startswith("{"):
        return None
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(document, dict):
        return None

    values = {}
    for name, keys in JSON_KEYS.items():
        value = next((document[k] for k in keys if document.get(k)), "")
        if name == "events":
            if isinstance(value, str):
                value = split_event_labels(value)
            elif not isinstance(value, list):
                value = [value] if value else []
            values[name] = tuple(str(v).strip() for v in value if str(v).strip())
        else:
            values[name] = str(value).strip()

    fields = PayloadFields(**values)
    if not fields.code and not fields.email:
        raise DecodeError(
            "JSON QR payload has no code or email", payload_format=PayloadFormat.JSON.value
        )
    return QRPayload(PayloadFormat.JSON, fields)


def _decode_labeled(text: str) -> QRPayload | None:
    values: dict[str, str] = {}

    for line in text.splitlines():
        label, sep, value = line.partition(":")
        if not sep:
            continue
        name = _LABEL_LOOKUP.get(normalize_label(label))
        # First occurrence of a label wins
        if name and name not in values:
            values[name] = value.strip()

    if not values:
        return None

    events = tuple(split_event_labels(values.pop("events", "")))
    fields = PayloadFields(events=events, **values)
    if not fields.code and not fields.email:
        raise DecodeError(
            "QR text has no code or email line", payload_format=PayloadFormat.LABELED.value
        )
    return QRPayload(PayloadFormat.LABELED, fields)


def _decode_plain(text: str) -> QRPayload:
    if len(text) > MAX_IDENTIFIER_LENGTH or any(ch.isspace() for ch in text):
        raise DecodeError(
            "QR payload is not a recognizable identifier",
            payload_format=PayloadFormat.PLAIN.value,
        )

    if _EMAIL_PATTERN.match(text):
        return QRPayload(PayloadFormat.PLAIN, PayloadFields(email=text))
    return QRPayload(PayloadFormat.PLAIN, PayloadFields(code=text))


def render_png(payload: str, size: int = 10, border: int = 4) -> bytes:
    """Render a payload as a PNG QR code image."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=size,
        border=border,
    )

    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    img_buffer = BytesIO()
    img.save(img_buffer, format="PNG")
    return img_buffer.getvalue()
