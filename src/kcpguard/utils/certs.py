"""Client certificate generation for etcd mutual TLS.

Client identities are minted on demand from the etcd certificate authority
stored in the management cluster. They are never written to durable storage.
"""

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kcpguard.core.exceptions import CertificateError
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)

CLIENT_COMMON_NAME = "cluster-api.x-k8s.io"
CLOCK_SKEW_ALLOWANCE = timedelta(minutes=5)
CLIENT_CERT_VALIDITY = timedelta(days=365 * 10)
RSA_KEY_SIZE = 2048

SigningKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey


@dataclass(frozen=True)
class PemFiles:
    """Paths of a client bundle written out for libraries that only read files."""

    ca_cert: str
    cert: str
    key: str


@dataclass(frozen=True)
class ClientCertBundle:
    """Ephemeral client identity signed by the etcd CA."""

    cert_pem: bytes
    key_pem: bytes
    ca_cert_pem: bytes
    issued_at: datetime

    def certificate(self) -> x509.Certificate:
        """Get the parsed client certificate."""
        return x509.load_pem_x509_certificate(self.cert_pem)

    @contextmanager
    def pem_files(self) -> Iterator[PemFiles]:
        """Write the bundle to a private temporary directory.

        The directory and the key in it are removed when the block exits.

        Yields:
            Paths of the CA certificate, client certificate and client key

        Raises:
            CertificateError: If the key does not match the certificate or
                the files cannot be written
        """
        try:
            cert = self.certificate()
            key = serialization.load_pem_private_key(self.key_pem, password=None)
        except (ValueError, TypeError) as e:
            raise CertificateError(f"Failed to load client TLS bundle: {e}") from e

        if cert.public_key().public_numbers() != key.public_key().public_numbers():
            raise CertificateError("Client key does not match client certificate")

        with tempfile.TemporaryDirectory(prefix="kcpguard-") as tmpdir:
            paths = PemFiles(
                ca_cert=str(Path(tmpdir) / "ca.crt"),
                cert=str(Path(tmpdir) / "client.crt"),
                key=str(Path(tmpdir) / "client.key"),
            )
            try:
                Path(paths.ca_cert).write_bytes(self.ca_cert_pem)
                Path(paths.cert).write_bytes(self.cert_pem)
                Path(paths.key).touch(mode=0o600)
                Path(paths.key).write_bytes(self.key_pem)
            except OSError as e:
                raise CertificateError(f"Failed to write client TLS bundle: {e}") from e

            yield paths


def new_private_key() -> rsa.RSAPrivateKey:
    """Generate a new RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE)


def decode_cert_pem(data: bytes) -> x509.Certificate:
    """Decode a PEM encoded certificate.

    Raises:
        CertificateError: If the data is not a PEM certificate
    """
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise CertificateError(f"Failed to decode CA certificate: {e}") from e


def decode_private_key_pem(data: bytes) -> SigningKey:
    """Decode a PEM encoded private key.

    Raises:
        CertificateError: If the data is not a supported PEM private key
    """
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as e:
        raise CertificateError(f"Failed to decode CA private key: {e}") from e

    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise CertificateError(f"Unsupported CA private key type: {type(key).__name__}")
    return key


def encode_cert_pem(cert: x509.Certificate) -> bytes:
    """Encode a certificate as PEM."""
    return cert.public_bytes(serialization.Encoding.PEM)


def encode_private_key_pem(key: rsa.RSAPrivateKey) -> bytes:
    """Encode a private key as unencrypted PKCS#1 PEM."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def new_client_cert(
    ca_cert: x509.Certificate,
    key: rsa.RSAPrivateKey,
    ca_key: SigningKey,
    now: datetime,
) -> x509.Certificate:
    """Create a client-auth certificate for key, signed by the CA.

    Args:
        ca_cert: CA certificate, used as issuer
        key: Client private key
        ca_key: CA private key used to sign
        now: Issuance time

    Returns:
        Signed client certificate

    Raises:
        CertificateError: If signing fails
    """
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, CLIENT_COMMON_NAME)])

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - CLOCK_SKEW_ALLOWANCE)
        .not_valid_after(now + CLIENT_CERT_VALIDITY)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
            critical=False,
        )
    )

    try:
        return builder.sign(private_key=ca_key, algorithm=hashes.SHA256())
    except (ValueError, TypeError) as e:
        logger.error("client_cert_signing_failed", error=str(e))
        raise CertificateError(f"Failed to create signed client certificate: {e}") from e


def generate_client_cert(
    ca_cert_pem: bytes,
    ca_key_pem: bytes,
    now: datetime | None = None,
) -> ClientCertBundle:
    """Mint a client identity from a PEM encoded CA certificate and key.

    Args:
        ca_cert_pem: PEM encoded CA certificate
        ca_key_pem: PEM encoded CA private key
        now: Issuance time (defaults to current UTC time)

    Returns:
        ClientCertBundle containing the new certificate, key and CA

    Raises:
        CertificateError: If the CA material is invalid or signing fails
    """
    issued_at = now or datetime.now(timezone.utc)

    private_key = new_private_key()
    ca_cert = decode_cert_pem(ca_cert_pem)
    ca_key = decode_private_key_pem(ca_key_pem)

    cert = new_client_cert(ca_cert, private_key, ca_key, issued_at)

    logger.debug(
        "client_cert_generated",
        common_name=CLIENT_COMMON_NAME,
        issuer=ca_cert.subject.rfc4514_string(),
        not_after=cert.not_valid_after_utc.isoformat(),
    )

    return ClientCertBundle(
        cert_pem=encode_cert_pem(cert),
        key_pem=encode_private_key_pem(private_key),
        ca_cert_pem=ca_cert_pem,
        issued_at=issued_at,
    )
