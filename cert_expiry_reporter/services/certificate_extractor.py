"""
证书文件解析服务
"""
import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import NameOID

from ..interfaces import CertificateExtractorInterface
from ..models import CertificateRecord, ExtractionFailure
from .error_handler import CertificateDecodeError, ExtractionErrorHandler
from .expiry_calculator import calculate_days_until_expiry, classify

logger = logging.getLogger(__name__)

# 可分辨名称属性的简称（与 Windows 证书管理器显示一致）
_NAME_SHORT_KEYS = {
    NameOID.COMMON_NAME: "CN",
    NameOID.ORGANIZATIONAL_UNIT_NAME: "OU",
    NameOID.ORGANIZATION_NAME: "O",
    NameOID.LOCALITY_NAME: "L",
    NameOID.STATE_OR_PROVINCE_NAME: "S",
    NameOID.COUNTRY_NAME: "C",
    NameOID.EMAIL_ADDRESS: "E",
    NameOID.STREET_ADDRESS: "STREET",
    NameOID.DOMAIN_COMPONENT: "DC",
    NameOID.SERIAL_NUMBER: "SERIALNUMBER",
    NameOID.TITLE: "T",
    NameOID.GIVEN_NAME: "G",
    NameOID.SURNAME: "SN",
}

_DN_KEY_ALIASES = {"ST": "S"}

_KEY_USAGE_FLAGS = [
    ("digital_signature", "Digital Signature", 0x80),
    ("content_commitment", "Non-Repudiation", 0x40),
    ("key_encipherment", "Key Encipherment", 0x20),
    ("data_encipherment", "Data Encipherment", 0x10),
    ("key_agreement", "Key Agreement", 0x08),
    ("key_cert_sign", "Certificate Signing", 0x04),
    ("crl_sign", "Off-line CRL Signing, CRL Signing", 0x02),
]

_EKU_FRIENDLY_NAMES = {
    "1.3.6.1.5.5.7.3.1": "Server Authentication",
    "1.3.6.1.5.5.7.3.2": "Client Authentication",
    "1.3.6.1.5.5.7.3.3": "Code Signing",
    "1.3.6.1.5.5.7.3.4": "Secure Email",
    "1.3.6.1.5.5.7.3.8": "Time Stamping",
    "1.3.6.1.5.5.7.3.9": "OCSP Signing",
    "1.3.6.1.4.1.311.20.2.2": "Smart Card Logon",
    "1.3.6.1.4.1.311.10.3.4": "Encrypting File System",
    "2.5.29.37.0": "Any Purpose",
}


class ExtensionKind(Enum):
    """参与报告的证书扩展类型"""
    KEY_USAGE = "Key Usage"
    ENHANCED_KEY_USAGE = "Enhanced Key Usage"
    SUBJECT_ALTERNATIVE_NAME = "Subject Alternative Name"


def _quote_dn_value(value: str) -> str:
    if any(ch in value for ch in ',="+') or value != value.strip():
        return '"' + value.replace('"', '""') + '"'
    return value


def format_distinguished_name(name: x509.Name) -> str:
    """
    将 x509.Name 格式化为 "CN=..., O=..., C=..." 形式（最具体的组件在前）

    Args:
        name: 证书主题或颁发者名称

    Returns:
        str: 可分辨名称字符串
    """
    parts = []
    for rdn in reversed(list(name.rdns)):
        values = []
        for attribute in rdn:
            key = _NAME_SHORT_KEYS.get(attribute.oid, f"OID.{attribute.oid.dotted_string}")
            value = attribute.value
            if isinstance(value, bytes):
                value = value.hex()
            values.append(f"{key}={_quote_dn_value(value)}")
        parts.append(" + ".join(values))
    return ", ".join(parts)


def parse_distinguished_name(dn: str) -> Dict[str, str]:
    """
    解析可分辨名称为有序的组件字典

    先按逗号拆分（忽略双引号内的逗号），再按第一个等号拆分键值，
    键名统一为大写。重复的键只保留第一次出现的值。

    Args:
        dn: 可分辨名称字符串

    Returns:
        Dict[str, str]: 组件字典
    """
    segments = []
    current = []
    in_quotes = False
    for ch in dn or "":
        if ch == '"':
            in_quotes = not in_quotes
        if ch == ',' and not in_quotes:
            segments.append("".join(current))
            current = []
        else:
            current.append(ch)
    segments.append("".join(current))

    components: Dict[str, str] = {}
    for segment in segments:
        if '=' not in segment:
            continue
        key, value = segment.split('=', 1)
        key = key.strip().upper()
        key = _DN_KEY_ALIASES.get(key, key)
        value = value.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1].replace('""', '"')
        if key and key not in components:
            components[key] = value
    return components


def _format_key_usage(usage: x509.KeyUsage) -> str:
    names = []
    mask = 0
    for attr, label, bit in _KEY_USAGE_FLAGS:
        if getattr(usage, attr):
            names.append(label)
            mask |= bit
    # encipher_only/decipher_only 只有在 key_agreement 为真时才可读取
    if usage.key_agreement:
        if usage.encipher_only:
            names.append("Encipher Only")
            mask |= 0x01
        if usage.decipher_only:
            names.append("Decipher Only")
            mask |= 0x8000
    if not names:
        return ""
    mask_text = f"{mask:04x}" if mask > 0xFF else f"{mask:02x}"
    return f"{', '.join(names)} ({mask_text})"


def _format_enhanced_key_usage(usage: x509.ExtendedKeyUsage) -> str:
    parts = []
    for oid in usage:
        dotted = oid.dotted_string
        friendly = _EKU_FRIENDLY_NAMES.get(dotted)
        parts.append(f"{friendly} ({dotted})" if friendly else dotted)
    return ", ".join(parts)


def _format_general_name(general_name: x509.GeneralName) -> str:
    if isinstance(general_name, x509.DNSName):
        return f"DNS Name={general_name.value}"
    if isinstance(general_name, x509.IPAddress):
        return f"IP Address={general_name.value}"
    if isinstance(general_name, x509.RFC822Name):
        return f"RFC822 Name={general_name.value}"
    if isinstance(general_name, x509.UniformResourceIdentifier):
        return f"URL={general_name.value}"
    if isinstance(general_name, x509.DirectoryName):
        return f"Directory Address={format_distinguished_name(general_name.value)}"
    if isinstance(general_name, x509.RegisteredID):
        return f"Registered ID={general_name.value.dotted_string}"
    if isinstance(general_name, x509.OtherName):
        return f"Other Name={general_name.type_id.dotted_string}"
    return str(general_name)


def _format_subject_alt_names(names: x509.SubjectAlternativeName) -> str:
    return ", ".join(_format_general_name(name) for name in names)


_EXTENSION_CLASSES = {
    ExtensionKind.KEY_USAGE: x509.KeyUsage,
    ExtensionKind.ENHANCED_KEY_USAGE: x509.ExtendedKeyUsage,
    ExtensionKind.SUBJECT_ALTERNATIVE_NAME: x509.SubjectAlternativeName,
}

_EXTENSION_FORMATTERS = {
    ExtensionKind.KEY_USAGE: _format_key_usage,
    ExtensionKind.ENHANCED_KEY_USAGE: _format_enhanced_key_usage,
    ExtensionKind.SUBJECT_ALTERNATIVE_NAME: _format_subject_alt_names,
}


def format_extension(cert: x509.Certificate, kind: ExtensionKind) -> Optional[str]:
    """
    读取并格式化指定的证书扩展

    Args:
        cert: 证书对象
        kind: 扩展类型

    Returns:
        Optional[str]: 格式化后的文本，扩展不存在或无法解析时为None
    """
    try:
        extension = cert.extensions.get_extension_for_class(_EXTENSION_CLASSES[kind])
        return _EXTENSION_FORMATTERS[kind](extension.value)
    except x509.ExtensionNotFound:
        return None
    except Exception as e:
        logger.debug(f"无法格式化扩展 {kind.value}: {type(e).__name__}: {str(e)}")
        return None


def load_certificate(data: bytes) -> x509.Certificate:
    """
    从字节内容加载证书（先尝试PEM，再尝试DER）

    Raises:
        CertificateDecodeError: 内容不是有效的证书
    """
    if b"-----BEGIN" in data:
        try:
            return x509.load_pem_x509_certificate(data)
        except ValueError as e:
            raise CertificateDecodeError(f"PEM证书解码失败: {str(e)}") from e
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise CertificateDecodeError(f"DER证书解码失败: {str(e)}") from e


def _format_serial_number(serial_number: int) -> str:
    text = format(serial_number, "X")
    return text if len(text) % 2 == 0 else "0" + text


class CertificateExtractor(CertificateExtractorInterface):
    """证书解析器实现"""

    def __init__(self, error_handler: Optional[ExtractionErrorHandler] = None):
        self.error_handler = error_handler or ExtractionErrorHandler()

    def extract(self, file_path: str, now: Optional[datetime] = None
                ) -> Union[CertificateRecord, ExtractionFailure]:
        """
        解析单个证书文件

        Args:
            file_path: 证书文件路径
            now: 检查时间，默认为当前UTC时间

        Returns:
            CertificateRecord: 解析成功时的证书记录
            ExtractionFailure: 解析失败时的失败信息（不抛出异常）
        """
        try:
            data = Path(file_path).read_bytes()
            cert = load_certificate(data)
            return self._build_record(cert, os.path.basename(str(file_path)), now)
        except Exception as e:
            return self.error_handler.handle_extraction_error(str(file_path), e)

    def _build_record(self, cert: x509.Certificate, file_name: str,
                      now: Optional[datetime] = None) -> CertificateRecord:
        checked_at = now or datetime.now(timezone.utc)

        subject_raw = format_distinguished_name(cert.subject)
        issuer_raw = format_distinguished_name(cert.issuer)
        subject = parse_distinguished_name(subject_raw)
        issuer = parse_distinguished_name(issuer_raw)

        not_after = cert.not_valid_after_utc
        days_left = calculate_days_until_expiry(not_after, checked_at)

        return CertificateRecord(
            file_name=file_name,
            domain=subject.get("CN") or subject_raw,
            subject_raw=subject_raw,
            issuer_raw=issuer_raw,
            issuer_name=issuer.get("CN") or issuer_raw,
            not_before=cert.not_valid_before_utc,
            not_after=not_after,
            thumbprint=cert.fingerprint(hashes.SHA1()).hex().upper(),
            serial_number=_format_serial_number(cert.serial_number),
            days_left=days_left,
            status=classify(days_left),
            last_checked=checked_at,
            country=subject.get("C", ""),
            organization=subject.get("O", ""),
            org_unit=subject.get("OU", ""),
            locality=subject.get("L", ""),
            state=subject.get("S", ""),
            key_usage=format_extension(cert, ExtensionKind.KEY_USAGE) or "",
            enhanced_key_usage=format_extension(cert, ExtensionKind.ENHANCED_KEY_USAGE) or "",
            subject_alt_names=format_extension(cert, ExtensionKind.SUBJECT_ALTERNATIVE_NAME) or "",
        )
