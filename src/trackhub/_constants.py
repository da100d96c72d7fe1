"""Internal constants shared across the library."""

USER_AGENT = "trackhub/1.0"

DEFAULT_TIME_ZONE = "America/Sao_Paulo"
DEFAULT_LOCATION_LABEL = "Localização não informada"

# ------------------------------------------------------------------
# Provider date formats (strptime)
# ------------------------------------------------------------------

ATUALCARGO_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"  # 2025-11-07 15:38:12
SITRAX_DATE_FORMAT = "%d/%m/%Y %H:%M:%S"  # 03/11/2025 08:38:00

# ------------------------------------------------------------------
# Sankhya
# ------------------------------------------------------------------

SANKHYA_SERVICE_PATH = "/mge/service.sbr"
SANKHYA_LOGIN_SERVICE = "MobileLoginSP.login"
SANKHYA_QUERY_SERVICE = "DbExplorerSP.executeQuery"
SANKHYA_SAVE_SERVICE = "DatasetSP.save"

SANKHYA_STATUS_OK = "1"
SANKHYA_STATUS_TIMEOUT = "3"  # session expired / not authorized
SANKHYA_AUTH_FAILED_STATUSES: frozenset[str] = frozenset({SANKHYA_STATUS_TIMEOUT})

SANKHYA_QUERY_DATE_FORMAT = "%d%m%Y %H:%M:%S"  # 07112025 13:58:42
SANKHYA_INSERT_DATE_FORMAT = "%d/%m/%Y %H:%M:%S"  # 07/11/2025 13:58:42

VEHICLE_CATALOG_TABLE = "TGFVEI"
VEHICLE_HISTORY_ENTITY = "AD_LOCATCAR"
TAG_CATALOG_TABLE = "AD_CADISCA"
TAG_HISTORY_ENTITY = "AD_LOCATISC"

# ------------------------------------------------------------------
# HTTP status classification
# ------------------------------------------------------------------

AUTH_FAILED_HTTP_STATUSES: frozenset[int] = frozenset({401, 403})
RATE_LIMIT_HTTP_STATUSES: frozenset[int] = frozenset({425, 429})
