"""Concrete link grammars for the supported proxy protocols."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any
from urllib.parse import parse_qs, urlsplit

from .base import (
    CanonicalSummary,
    FieldSpec,
    LinkDecodeError,
    LinkDecoder,
    UriLinkDecoder,
    format_address,
    read_fields,
    unescape,
)


def b64decode_loose(text: str) -> str:
    """Decode standard or URL-safe base64 with or without padding."""

    compact = text.strip().replace("\n", "").replace("\r", "")
    compact += "=" * (-len(compact) % 4)
    for altchars in (None, b"-_"):
        try:
            return base64.b64decode(compact, altchars=altchars, validate=True).decode("utf-8")
        except (binascii.Error, ValueError):
            continue
    raise LinkDecodeError("payload is not base64")


class VlessDecoder(UriLinkDecoder):
    protocol = "vless"
    identifiers = ("vless://",)
    credential = "id"
    fields = (
        FieldSpec("type", "network"),
        FieldSpec("security"),
        FieldSpec("sni"),
        FieldSpec("flow"),
        FieldSpec("encryption"),
        FieldSpec("path"),
        FieldSpec("host"),
        FieldSpec("fp", "fingerprint"),
        FieldSpec("pbk", "public_key"),
        FieldSpec("sid", "short_id"),
        FieldSpec("alpn"),
        FieldSpec("serviceName", "service_name"),
    )


class TrojanDecoder(UriLinkDecoder):
    protocol = "trojan"
    identifiers = ("trojan://",)
    credential = "password"
    fields = (
        FieldSpec("type", "network"),
        FieldSpec("security"),
        FieldSpec("sni"),
        FieldSpec("path"),
        FieldSpec("host"),
        FieldSpec("alpn"),
        FieldSpec("fp", "fingerprint"),
    )


class Hysteria2Decoder(UriLinkDecoder):
    protocol = "hysteria2"
    identifiers = ("hysteria2://", "hy2://")
    credential = "password"
    fields = (
        FieldSpec("sni"),
        FieldSpec("obfs"),
        FieldSpec("obfs-password", "obfs_password"),
        FieldSpec("pinSHA256", "pin_sha256"),
        FieldSpec("insecure", kind=int),
    )


class TuicDecoder(UriLinkDecoder):
    protocol = "tuic"
    identifiers = ("tuic://",)
    credential = "uuid"
    fields = (
        FieldSpec("sni"),
        FieldSpec("alpn"),
        FieldSpec("congestion_control"),
        FieldSpec("udp_relay_mode"),
        FieldSpec("allow_insecure", kind=int),
    )

    def parse_credential(self, userinfo: str) -> dict[str, Any]:
        uuid, _, password = userinfo.partition(":")
        credential: dict[str, Any] = {"uuid": uuid}
        if password:
            credential["password"] = password
        return credential


class WireguardDecoder(UriLinkDecoder):
    protocol = "wireguard"
    identifiers = ("wireguard://", "wg://")
    credential = "secret_key"
    fields = (
        FieldSpec("publickey", "public_key"),
        FieldSpec("address", "local_address"),
        FieldSpec("reserved"),
        FieldSpec("mtu", kind=int),
    )


class SocksDecoder(UriLinkDecoder):
    protocol = "socks"
    identifiers = ("socks://", "socks5://")
    credential_required = False

    def parse_credential(self, userinfo: str) -> dict[str, Any]:
        if ":" not in userinfo:
            # some panels base64 the user:pass pair
            try:
                userinfo = b64decode_loose(userinfo)
            except LinkDecodeError:
                return {"username": userinfo}
        username, _, password = userinfo.partition(":")
        return {"username": username, "password": password}


class VmessDecoder(LinkDecoder):
    """``vmess://`` followed by base64 of a JSON object."""

    protocol = "vmess"
    identifiers = ("vmess://",)
    fields = (
        FieldSpec("add", "server"),
        FieldSpec("port", kind=int),
        FieldSpec("id"),
        FieldSpec("aid", "alter_id", kind=int),
        FieldSpec("net", "network"),
        FieldSpec("type", "header_type"),
        FieldSpec("host"),
        FieldSpec("path"),
        FieldSpec("tls"),
        FieldSpec("sni"),
    )

    def parse(self, link: str) -> CanonicalSummary:
        payload = self.strip_identifier(link)
        data = json.loads(b64decode_loose(payload))
        if not isinstance(data, dict):
            raise LinkDecodeError("vmess payload is not a JSON object")
        details = read_fields(self.fields, data)
        server = details.get("server")
        if not server:
            raise LinkDecodeError("missing host")
        return CanonicalSummary(
            protocol=self.protocol,
            remark=str(data.get("ps") or ""),
            address=format_address(server, details.get("port")),
            details=details,
        )


class ShadowsocksDecoder(LinkDecoder):
    """SIP002 ``ss://userinfo@host:port`` or legacy ``ss://base64(all)``."""

    protocol = "shadowsocks"
    identifiers = ("ss://",)
    fields = (FieldSpec("plugin"),)

    def parse(self, link: str) -> CanonicalSummary:
        body = self.strip_identifier(link)
        body, _, fragment = body.partition("#")
        body, _, query = body.partition("?")
        body = body.rstrip("/")
        if "@" in body:
            userinfo, _, endpoint = body.rpartition("@")
            userinfo = unescape(userinfo)
            if ":" not in userinfo:
                userinfo = b64decode_loose(userinfo)
        else:
            decoded = b64decode_loose(body)
            userinfo, sep, endpoint = decoded.rpartition("@")
            if not sep:
                raise LinkDecodeError("missing host")
        method, sep, password = userinfo.partition(":")
        if not sep or not method:
            raise LinkDecodeError("missing method:password")

        parts = urlsplit(f"//{endpoint}")
        host = parts.hostname
        if not host:
            raise LinkDecodeError("missing host")
        port = parts.port

        details: dict[str, Any] = {"method": method, "password": password}
        details.update(read_fields(self.fields, parse_qs(query, keep_blank_values=True)))
        return CanonicalSummary(
            protocol=self.protocol,
            remark=unescape(fragment),
            address=format_address(host, port),
            details=details,
        )


DEFAULT_DECODERS: tuple[type[LinkDecoder], ...] = (
    VlessDecoder,
    VmessDecoder,
    TrojanDecoder,
    ShadowsocksDecoder,
    Hysteria2Decoder,
    TuicDecoder,
    WireguardDecoder,
    SocksDecoder,
)


__all__ = [
    "DEFAULT_DECODERS",
    "Hysteria2Decoder",
    "ShadowsocksDecoder",
    "SocksDecoder",
    "TrojanDecoder",
    "TuicDecoder",
    "VlessDecoder",
    "VmessDecoder",
    "WireguardDecoder",
    "b64decode_loose",
]
