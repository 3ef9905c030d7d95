"""HTTP client for the Evolution API gateway."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import httpx

from .config import GatewaySettings

LOGGER = logging.getLogger(__name__)

INTEGRATIONS = ("WHATSAPP-BAILEYS", "WHATSAPP-BUSINESS", "EVOLUTION")
PRESENCES = ("available", "unavailable")
STATUS_TYPES = ("text", "image", "video", "audio")


class ApiError(RuntimeError):
    """Raised when the gateway rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def _error_message(response: httpx.Response) -> str:
    fallback = f"HTTP {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return fallback
    if not isinstance(data, dict):
        return fallback

    candidates = [data.get("message")]
    nested = data.get("response")
    if isinstance(nested, dict):
        candidates.append(nested.get("message"))

    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
        if isinstance(candidate, list):
            parts = [str(part).strip() for part in candidate if str(part).strip()]
            if parts:
                return "; ".join(parts)
    return fallback


class EvolutionClient:
    """Thin wrapper around :class:`httpx.Client` adding auth and error normalisation."""

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._http = httpx.Client(
            base_url=settings.base_url.rstrip("/"),
            headers={"apikey": settings.api_key},
            timeout=settings.timeout,
            transport=transport,
        )

    def __enter__(self) -> "EvolutionClient":
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: Optional[Mapping[str, str]] = None,
        data: Optional[Mapping[str, str]] = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Issue a request and return the decoded JSON (or text) body."""

        if not path.startswith("/"):
            path = f"/{path}"
        query = {key: value for key, value in (params or {}).items() if value}

        LOGGER.debug("%s %s", method, path)
        try:
            response = self._http.request(
                method,
                path,
                json=json_body,
                params=query or None,
                data=data,
                files=files,
            )
        except httpx.HTTPError as exc:
            raise ApiError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            raise ApiError(_error_message(response), status=response.status_code)

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            return response.json()
        return response.text

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------
    def create_instance(
        self,
        instance_name: str,
        *,
        qrcode: bool = True,
        integration: str = "WHATSAPP-BAILEYS",
    ) -> Any:
        return self.request(
            "POST",
            "/instance/create",
            json_body={"instanceName": instance_name, "qrcode": qrcode, "integration": integration},
        )

    def fetch_instances(
        self, *, instance_name: Optional[str] = None, instance_id: Optional[str] = None
    ) -> Any:
        return self.request(
            "GET",
            "/instance/fetchInstances",
            params={"instanceName": instance_name or "", "instanceId": instance_id or ""},
        )

    def list_instances(self) -> List[Dict[str, str]]:
        """Return ``id``/``name``/``connectionStatus`` summaries for selection lists."""

        data = self.fetch_instances()
        if not isinstance(data, list):
            return []
        summaries: List[Dict[str, str]] = []
        for item in data:
            if isinstance(item, dict) and "id" in item and "name" in item:
                summaries.append(
                    {
                        "id": str(item["id"]),
                        "name": str(item["name"]),
                        "connectionStatus": str(item.get("connectionStatus") or ""),
                    }
                )
        return summaries

    def instance_connect(self, instance_name: str, number: Optional[str] = None) -> Any:
        return self.request("GET", f"/instance/connect/{instance_name}", params={"number": number or ""})

    def instance_restart(self, instance_name: str) -> Any:
        return self.request("POST", f"/instance/restart/{instance_name}")

    def instance_logout(self, instance_name: str) -> Any:
        return self.request("DELETE", f"/instance/logout/{instance_name}")

    def instance_delete(self, instance_name: str) -> Any:
        return self.request("DELETE", f"/instance/delete/{instance_name}")

    def connection_state(self, instance_name: str) -> Any:
        return self.request("GET", f"/instance/connectionState/{instance_name}")

    def set_presence(self, instance_name: str, presence: str) -> Any:
        return self.request("POST", f"/instance/setPresence/{instance_name}", json_body={"presence": presence})

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def send_text(self, instance_name: str, number: str, text: str) -> Any:
        return self.request(
            "POST",
            f"/message/sendText/{instance_name}",
            json_body={"number": number, "text": text},
        )

    def send_media(
        self, instance_name: str, number: str, file_path: str | Path, caption: Optional[str] = None
    ) -> Any:
        return self._upload(f"/message/sendMedia/{instance_name}", number, file_path, caption)

    def send_ptv(self, instance_name: str, number: str, file_path: str | Path) -> Any:
        return self._upload(f"/message/sendPtv/{instance_name}", number, file_path, None)

    def _upload(self, path: str, number: str, file_path: str | Path, caption: Optional[str]) -> Any:
        source = Path(file_path)
        fields = {"number": number}
        if caption:
            fields["caption"] = caption
        with source.open("rb") as handle:
            return self.request("POST", path, data=fields, files={"file": (source.name, handle)})

    def send_whatsapp_audio(self, instance_name: str, number: str, audio: str) -> Any:
        return self.request(
            "POST",
            f"/message/sendWhatsAppAudio/{instance_name}",
            json_body={"number": number, "audio": audio},
        )

    def send_status(
        self,
        instance_name: str,
        *,
        type: str,
        content: str,
        all_contacts: bool,
        caption: Optional[str] = None,
        background_color: Optional[str] = None,
        font: Optional[int] = None,
        status_jid_list: Optional[Sequence[str]] = None,
    ) -> Any:
        payload: Dict[str, Any] = {"type": type, "content": content, "allContacts": all_contacts}
        optional = {
            "caption": caption,
            "backgroundColor": background_color,
            "font": font,
            "statusJidList": list(status_jid_list) if status_jid_list else None,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return self.request("POST", f"/message/sendStatus/{instance_name}", json_body=payload)

    def send_sticker(self, instance_name: str, number: str, sticker: str) -> Any:
        return self.request(
            "POST",
            f"/message/sendSticker/{instance_name}",
            json_body={"number": number, "sticker": sticker},
        )

    def send_location(
        self,
        instance_name: str,
        number: str,
        *,
        name: str,
        address: str,
        latitude: float,
        longitude: float,
    ) -> Any:
        return self.request(
            "POST",
            f"/message/sendLocation/{instance_name}",
            json_body={
                "number": number,
                "name": name,
                "address": address,
                "latitude": latitude,
                "longitude": longitude,
            },
        )

    def send_contact(self, instance_name: str, number: str, contacts: Iterable[Mapping[str, Any]]) -> Any:
        cards = [{key: value for key, value in contact.items() if value} for contact in contacts]
        return self.request(
            "POST",
            f"/message/sendContact/{instance_name}",
            json_body={"number": number, "contact": cards},
        )

    def send_reaction(
        self, instance_name: str, *, remote_jid: str, from_me: bool, message_id: str, reaction: str
    ) -> Any:
        return self.request(
            "POST",
            f"/message/sendReaction/{instance_name}",
            json_body={
                "key": {"remoteJid": remote_jid, "fromMe": from_me, "id": message_id},
                "reaction": reaction,
            },
        )

    def send_poll(
        self, instance_name: str, number: str, *, name: str, selectable_count: int, values: Sequence[str]
    ) -> Any:
        return self.request(
            "POST",
            f"/message/sendPoll/{instance_name}",
            json_body={
                "number": number,
                "name": name,
                "selectableCount": selectable_count,
                "values": list(values),
            },
        )

    def send_list(
        self,
        instance_name: str,
        number: str,
        *,
        title: str,
        description: str,
        button_text: str,
        footer_text: str,
        sections: Sequence[Mapping[str, Any]],
    ) -> Any:
        return self.request(
            "POST",
            f"/message/sendList/{instance_name}",
            json_body={
                "number": number,
                "title": title,
                "description": description,
                "buttonText": button_text,
                "footerText": footer_text,
                "sections": list(sections),
            },
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------
    def check_whatsapp_numbers(self, instance_name: str, numbers: Sequence[str]) -> Any:
        return self.request(
            "POST",
            f"/chat/whatsappNumbers/{instance_name}",
            json_body={"numbers": list(numbers)},
        )


def dumps(payload: Any) -> str:
    """Pretty-print a decoded response for the terminal."""

    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2, ensure_ascii=False)


__all__ = ["ApiError", "EvolutionClient", "INTEGRATIONS", "PRESENCES", "STATUS_TYPES", "dumps"]
