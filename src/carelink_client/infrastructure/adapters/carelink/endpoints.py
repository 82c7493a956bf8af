from __future__ import annotations

from dataclasses import dataclass

from carelink_client.domain.model import Region

CARELINK_EU_SERVER = "carelink.minimed.eu"
CARELINK_US_SERVER = "carelink.minimed.com"

# Direct (cookie) login
LOGIN_COOKIE = "_WL_AUTHCOOKIE_JSESSIONID"
# SSO bearer token pair
TOKEN_COOKIE = "auth_tmp_token"
TOKEN_EXPIRE_COOKIE = "c_token_valid_to"

ALTERNATE_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:83.0) Gecko/20100101 Firefox/83.0"
)

_DATA_QUERY = "cpSerialNumber=NONE&msgType=last24hours&requestTime="


@dataclass(frozen=True)
class CareLinkEndpoints:
    """URLs of one CareLink deployment."""

    host: str
    region: Region

    @classmethod
    def for_region(cls, region: Region, host: str | None = None) -> "CareLinkEndpoints":
        default = CARELINK_EU_SERVER if region is Region.SSO else CARELINK_US_SERVER
        return cls(host=host or default, region=region)

    @property
    def base(self) -> str:
        return f"https://{self.host}/patient"

    @property
    def security_check_url(self) -> str:
        return f"{self.base}/j_security_check"

    @property
    def after_login_url(self) -> str:
        return f"{self.base}/main/login.do"

    @property
    def sso_login_url(self) -> str:
        return f"{self.base}/sso/login?country=gb&lang=en"

    @property
    def sso_refresh_url(self) -> str:
        return f"{self.base}/sso/reauth"

    def data_url(self, timestamp_ms: int) -> str:
        if self.region is Region.SSO:
            return f"{self.base}/connect/data?{_DATA_QUERY}{timestamp_ms}"
        return f"{self.base}/connect/ConnectViewerServlet?{_DATA_QUERY}{timestamp_ms}"
