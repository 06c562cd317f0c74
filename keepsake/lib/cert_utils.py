"""Certificate inspection helpers for issued PEM bundles."""

from cryptography import x509

from keepsake.lib.models import CertificateMetadata


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def extract_certificate_metadata(cert: x509.Certificate) -> CertificateMetadata:
    """Extract serial number, CN and validity window from a certificate.

    A certificate without a CN reports an empty commonName.
    """
    attributes = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    cn = attributes[0].value if attributes else ""
    if not isinstance(cn, str):
        raise ValueError("CN must be string")

    return CertificateMetadata(
        serialNumber=get_certificate_serial_hex(cert),
        commonName=cn,
        notBefore=cert.not_valid_before_utc.isoformat(),
        notAfter=cert.not_valid_after_utc.isoformat(),
    )
