"""Constants for the Knockaut client."""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum
from typing import Final

# Vendor & HTTP paths
VENDOR: Final = "knockaut"
API_PATH: Final = "/api/"
EXTENDED_API_PATH: Final = f"/hook/{VENDOR}/api/v1/"
WFC_WS_PATH_FMT: Final = "/wfc/{configurator_id}/api/"
JSONRPC_VERSION: Final = "2.0"

# Websocket defaults
DEFAULT_RECONNECTION: Final = True
DEFAULT_RECONNECTION_ATTEMPTS: Final = 10
DEFAULT_RECONNECTION_DELAY: Final = 1.0
DEFAULT_FRAME_FORMAT: Final = "json"

# Icons
ICON_BASE: Final = "icons"
VENDOR_ICON_PREFIX: Final = f"{VENDOR}-"
VENDOR_ICON_PATH_FMT: Final = "{host}/hook/" + VENDOR + "/icons/{name}.svg"
VARIABLE_FALLBACK_ICON: Final = "Minus"


class ObjectType(IntEnum):
    """Backend object kinds found in a snapshot."""

    CATEGORY = 0
    INSTANCE = 1
    VARIABLE = 2
    SCRIPT = 3
    EVENT = 4
    MEDIA = 5
    LINK = 6


class VariableType(IntEnum):
    """Value kinds a backend variable can carry."""

    BOOLEAN = 0
    INTEGER = 1
    FLOAT = 2
    STRING = 3


OBJECT_TYPE_ICONS: Final[Mapping[ObjectType, str]] = {
    ObjectType.CATEGORY: "Door",
    ObjectType.INSTANCE: "Plug",
    ObjectType.SCRIPT: "Script",
    ObjectType.EVENT: "Clock",
    ObjectType.MEDIA: "Image",
    ObjectType.LINK: "Link",
}

_PERCENT_STEPS: Final = (0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100)
_QUARTER_STEPS: Final = (0, 25, 50, 75, 100)

# Icons with value dependent variants, keyed to the available percentage suffixes.
ADAPTIVE_ICONS: Final[Mapping[str, tuple[int, ...]]] = {
    "Battery": _QUARTER_STEPS,
    "Intensity": _PERCENT_STEPS,
    "Jalousie": _PERCENT_STEPS,
    "Shutter": _PERCENT_STEPS,
    "Temperature": _QUARTER_STEPS,
    "Drops": _QUARTER_STEPS,
    "Gauge": _QUARTER_STEPS,
    "Speaker": (0, 50, 100),
    "Window": (0, 100),
}

# Endpoint groups
WFC_MANAGEMENT_ENDPOINTS: Final = frozenset(
    {
        "WFC_GetConfigurators",
    }
)

# Configurator scoped WFC calls: dashboard credentials on the base API path.
WFC_ENDPOINTS: Final = frozenset(
    {
        "WFC_GetSnapshot",
        "WFC_Execute",
        "WFC_RegisterPNS",
    }
)

DASHBOARD_ENDPOINTS: Final = WFC_ENDPOINTS | frozenset(
    {
        "KNO_GetAppInfo",
        "KNO_GetConfigurations",
        "KNO_GetConfiguration",
        "KNO_SetConfiguration",
        "KNO_GetIcons",
        "KNO_GetIconUrl",
        "KNO_GetSnapshotObject",
        "KNO_RunScene",
        "KNO_UpdateApp",
        "KNO_GetLoggedValues",
        "KNO_InitSystemFolders",
        "IPS_GetLibraryList",
        "IPS_GetModule",
        "IPS_GetLibrary",
        "IPS_GetLibraryModules",
        "IPS_GetModuleList",
        "IPS_GetInstanceListByModuleID",
        "IPS_GetActionsByEnvironment",
        "IPS_GetTranslatedActionsByEnvironment",
        "NC_AddDevice",
        "NC_GetDevices",
        "NC_RemoveDevice",
        "NC_SetDeviceName",
    }
)

ADVANCED_SETTINGS_ENDPOINTS: Final = frozenset(
    {
        "KNO_GetSceneConfig",
        "KNO_SyncScene",
        "KNO_DeleteScene",
        "KNO_GetAlarms",
        "KNO_SyncAlarm",
        "KNO_DeleteAlarm",
        "KNO_SyncEvent",
        "KNO_DeleteEvent",
        "KNO_SyncFooterVars",
        "KNO_ChangePassword",
        "KNO_GetFlowScriptData",
        "KNO_SyncFlowScript",
        "KNO_DeleteFlowScript",
    }
)


class WebSocketMessageType(IntEnum):
    """Discriminant carried in the ``Message`` field of push frames."""

    # Kernel
    KR_CREATE = 10101
    KR_INIT = 10102
    KR_READY = 10103
    KR_UNINIT = 10104
    KR_SHUTDOWN = 10105
    # Log
    KL_MESSAGE = 10201
    KL_SUCCESS = 10202
    KL_NOTIFY = 10203
    KL_WARNING = 10204
    KL_ERROR = 10205
    KL_DEBUG = 10206
    KL_CUSTOM = 10207
    # Modules
    ML_LOAD = 10301
    ML_UNLOAD = 10302
    # Objects
    OM_REGISTER = 10401
    OM_UNREGISTER = 10402
    OM_CHANGEPARENT = 10403
    OM_CHANGENAME = 10404
    OM_CHANGEINFO = 10405
    OM_CHANGETYPE = 10406
    OM_CHANGESUMMARY = 10407
    OM_CHANGEPOSITION = 10408
    OM_CHANGEREADONLY = 10409
    OM_CHANGEHIDDEN = 10410
    OM_CHANGEICON = 10411
    OM_CHILDADDED = 10412
    OM_CHILDREMOVED = 10413
    OM_CHANGEIDENT = 10414
    OM_CHANGEDISABLED = 10415
    # Instances
    IM_CREATE = 10501
    IM_DELETE = 10502
    IM_CONNECT = 10503
    IM_DISCONNECT = 10504
    IM_CHANGESTATUS = 10505
    IM_CHANGESETTINGS = 10506
    IM_SEARCHSTART = 10511
    IM_SEARCHSTOP = 10512
    IM_SEARCHUPDATE = 10513
    # Variables
    VM_CREATE = 10601
    VM_DELETE = 10602
    VM_UPDATE = 10603
    VM_CHANGEPROFILENAME = 10604
    VM_CHANGEPROFILEACTION = 10605
    # Scripts
    SM_CREATE = 10701
    SM_DELETE = 10702
    SM_CHANGEFILE = 10703
    SM_BROKEN = 10704
    SM_UPDATE = 10704
    # Events
    EM_CREATE = 10801
    EM_DELETE = 10802
    EM_UPDATE = 10803
    EM_CHANGEACTIVE = 10804
    EM_CHANGELIMIT = 10805
    EM_CHANGESCRIPT = 10806
    EM_CHANGETRIGGER = 10807
    EM_CHANGETRIGGERVALUE = 10808
    EM_CHANGETRIGGEREXECUTION = 10809
    EM_CHANGECYCLIC = 10810
    EM_CHANGECYCLICDATEFROM = 10811
    EM_CHANGECYCLICDATETO = 10812
    EM_CHANGECYCLICTIMEFROM = 10813
    EM_CHANGECYCLICTIMETO = 10814
    EM_ADDSCHEDULEACTION = 10815
    EM_REMOVESCHEDULEACTION = 10816
    EM_CHANGESCHEDULEACTION = 10817
    EM_ADDSCHEDULEGROUP = 10818
    EM_REMOVESCHEDULEGROUP = 10819
    EM_CHANGESCHEDULEGROUP = 10820
    EM_ADDSCHEDULEGROUPPOINT = 10821
    EM_REMOVESCHEDULEGROUPPOINT = 10822
    EM_CHANGESCHEDULEGROUPPOINT = 10823
    EM_ADDCONDITION = 10824
    EM_REMOVECONDITION = 10825
    EM_CHANGECONDITION = 10826
    EM_ADDCONDITIONVARIABLERULE = 10827
    EM_REMOVECONDITIONVARIABLERULE = 10828
    EM_CHANGECONDITIONVARIABLERULE = 10829
    EM_ADDCONDITIONDATERULE = 10830
    EM_REMOVECONDITIONDATERULE = 10831
    EM_CHANGECONDITIONDATERULE = 10832
    EM_ADDCONDITIONTIMERULE = 10833
    EM_REMOVECONDITIONTIMERULE = 10834
    EM_CHANGECONDITIONTIMERULE = 10835
    # Media
    MM_CREATE = 10901
    MM_DELETE = 10902
    MM_CHANGEFILE = 10903
    MM_AVAILABLE = 10904
    MM_UPDATE = 10905
    MM_CHANGECACHED = 10906
    # Links
    LM_CREATE = 11001
    LM_DELETE = 11002
    LM_CHANGETARGET = 11003
    # Flow
    FM_CONNECT = 11101
    FM_DISCONNECT = 11102
    FM_CHILDADDED = 11103
    FM_CHILDREMOVED = 11104
    # Script engine
    SE_UPDATE = 11201
    SE_EXECUTE = 11202
    SE_RUNNING = 11203
    # Profiles
    PM_CREATE = 11301
    PM_DELETE = 11302
    PM_CHANGETEXT = 11303
    PM_CHANGEVALUES = 11304
    PM_CHANGEDIGITS = 11305
    PM_CHANGEICON = 11306
    PM_ASSOCIATIONADDED = 11307
    PM_ASSOCIATIONREMOVED = 11308
    PM_ASSOCIATIONCHANGED = 11309
    # Timers
    TM_REGISTER = 11401
    TM_UNREGISTER = 11402
    TM_CHANGEINTERVAL = 11403


def signal_socket_event(prefix: str, event: str) -> str:
    """Return the dispatcher signal name for a websocket session event."""

    return f"{prefix}_{event}"
