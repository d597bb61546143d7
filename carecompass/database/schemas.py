"""
Data models

- Wire and storage shapes share camelCase field names
- Patients and logs keep unknown fields (free-form records)
- Register/login inputs are all optional so the auth service can report
  the exact missing-field message instead of a generic validation error
"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, ConfigDict

Role = Literal["doctor", "caregiver"]
ROLES = ("doctor", "caregiver")


class UserPublic(BaseModel):
    """
    User as returned to clients and embedded in sessions
    """
    id: str                 = Field(..., description="User identifier (creation time in ms, as string)")
    name: str               = Field(..., description="Display name")
    email: str              = Field(..., description="Login e-mail, lower-cased")
    role: Role              = Field(..., description="'doctor' or 'caregiver'")


class UserRecord(UserPublic):
    """
    Stored user (one collection per role)
    """
    password: str           = Field(..., description="sha256 hex digest of the password")
    createdAt: int          = Field(..., description="Creation time (epoch ms)")

    def public(self) -> UserPublic:
        return UserPublic(id=self.id, name=self.name, email=self.email, role=self.role)


class RegisterRequest(BaseModel):
    name: Optional[str]             = None
    email: Optional[str]            = None
    password: Optional[str]         = None
    confirmPassword: Optional[str]  = None
    role: Optional[str]             = None


class LoginRequest(BaseModel):
    email: Optional[str]    = None
    password: Optional[str] = None
    role: Optional[str]     = None


class LogoutRequest(BaseModel):
    token: Optional[str] = None


class RegisterResponse(BaseModel):
    message: str
    user: UserPublic


class LoginResponse(BaseModel):
    token: str
    user: UserPublic


class Session(BaseModel):
    """
    Session keyed by token; invalid once expiresAt has passed
    """
    user: UserPublic
    expiresAt: int          = Field(..., description="Expiry time (epoch ms)")


class Patient(BaseModel):
    """
    Patient record

    Only the id is required; name, diagnosis, status, sleepHours and
    anything else the client sends is kept as-is.
    """
    model_config = ConfigDict(extra="allow")
    id: str                             = Field(..., min_length=1, description="Patient identifier chosen by the client")
    name: Optional[str]                 = None
    diagnosis: Optional[str]            = None
    status: Optional[str]               = None
    sleepHours: Optional[List[float]]   = None


class LogEntry(BaseModel):
    """
    Caregiver log entry (ABC behaviour record plus daily care fields)
    """
    model_config = ConfigDict(extra="allow")
    patientId: str
    createdAt: int
    mood: Optional[str]         = None
    antecedent: Optional[str]   = None
    behavior: Optional[str]     = None
    consequence: Optional[str]  = None
    note: Optional[str]         = None
    sleepStart: Optional[str]   = Field(None, description="Bedtime, 'HH:MM'")
    sleepEnd: Optional[str]     = Field(None, description="Wake time, 'HH:MM'")
    hydration: Optional[str]    = Field(None, description="'drank' counts toward water intake")
    food: Optional[str]         = Field(None, description="'full' or 'partial' counts as a meal")
    meds: Optional[str]         = Field(None, description="'given' counts as a dose on time")


class NoteInput(BaseModel):
    note: Optional[str] = None


class ClinicianNote(BaseModel):
    patientId: str
    note: str           = ""
    createdAt: int


class ShareLink(BaseModel):
    code: str
    url: str
    expiresAt: int      = Field(..., description="Expiry time (epoch ms)")


class WeeklySummary(BaseModel):
    patientId: str
    labels: List[str]
    sleep: List[Optional[float]]
    incidents: List[int]
    hydration: List[int]
    food: List[int]
    meds: List[int]
    status: Literal["risk", "stable"]
