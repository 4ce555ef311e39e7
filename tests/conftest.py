"""
测试公共夹具：动态生成测试证书和证书记录
"""
import ipaddress
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from cert_expiry_reporter.models import CertificateRecord
from cert_expiry_reporter.services.expiry_calculator import classify

_SUBJECT_OIDS = [
    ("C", NameOID.COUNTRY_NAME),
    ("S", NameOID.STATE_OR_PROVINCE_NAME),
    ("L", NameOID.LOCALITY_NAME),
    ("O", NameOID.ORGANIZATION_NAME),
    ("OU", NameOID.ORGANIZATIONAL_UNIT_NAME),
]


@pytest.fixture(scope="session")
def signing_key():
    return ec.generate_private_key(ec.SECP256R1())


def build_certificate(key, common_name="example.com", days=60, subject=None,
                      issuer_cn="Test Issuing CA", extensions=True, serial=0x1A2B3C,
                      key_usage=None):
    """
    生成自签名测试证书

    days 为剩余整天数，额外加12小时避免测试执行期间跨越整天边界。
    """
    not_after = datetime.now(timezone.utc) + timedelta(days=days, hours=12)
    not_before = not_after - timedelta(days=365)

    subject = subject or {}
    attributes = [x509.NameAttribute(oid, subject[key_name])
                  for key_name, oid in _SUBJECT_OIDS if key_name in subject]
    if common_name is not None:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))

    issuer = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test PKI"),
        x509.NameAttribute(NameOID.COMMON_NAME, issuer_cn),
    ])

    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(attributes))
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
    )

    if extensions:
        san_host = common_name or "host.example.com"
        key_usage = key_usage or x509.KeyUsage(
            digital_signature=True, content_commitment=False, key_encipherment=True,
            data_encipherment=False, key_agreement=False, key_cert_sign=False,
            crl_sign=False, encipher_only=False, decipher_only=False
        )
        builder = builder.add_extension(
            key_usage,
            critical=True
        ).add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]),
            critical=False
        ).add_extension(
            x509.SubjectAlternativeName([
                x509.DNSName(san_host),
                x509.DNSName(f"www.{san_host}"),
                x509.IPAddress(ipaddress.ip_address("10.0.0.1")),
            ]),
            critical=False
        )

    return builder.sign(key, hashes.SHA256())


@pytest.fixture
def cert_factory(tmp_path, signing_key):
    """返回一个把测试证书写入临时目录的函数"""
    cert_dir = tmp_path / "certs"
    cert_dir.mkdir()

    def write_cert(file_name, der=False, **kwargs):
        cert = build_certificate(signing_key, **kwargs)
        encoding = serialization.Encoding.DER if der else serialization.Encoding.PEM
        path = cert_dir / file_name
        path.write_bytes(cert.public_bytes(encoding))
        return path

    write_cert.directory = cert_dir
    return write_cert


@pytest.fixture
def record_factory():
    """返回一个构建 CertificateRecord 的函数（状态由剩余天数推导）"""
    checked = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)

    def make_record(domain="example.com", days_left=60, **overrides):
        values = dict(
            file_name=f"{domain}.cer",
            domain=domain,
            subject_raw=f"CN={domain}, O=Example Corp, C=US",
            issuer_raw="CN=Test Issuing CA, O=Test PKI, C=US",
            issuer_name="Test Issuing CA",
            not_before=checked - timedelta(days=300),
            not_after=checked + timedelta(days=days_left, hours=1),
            thumbprint="AB" * 20,
            serial_number="1A2B3C",
            days_left=days_left,
            status=classify(days_left),
            last_checked=checked,
            country="US",
            organization="Example Corp",
        )
        values.update(overrides)
        return CertificateRecord(**values)

    return make_record


@pytest.fixture
def certificate_builder(signing_key):
    """返回一个生成内存证书对象的函数"""
    def build(**kwargs):
        return build_certificate(signing_key, **kwargs)
    return build
