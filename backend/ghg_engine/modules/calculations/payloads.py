"""Per-activity-type payload schemas.

Each activity type owns one closed schema; unknown fields are rejected
so that malformed payloads fail validation before reaching formula code.
Numeric strings are accepted and coerced, matching what form-based
clients send. Legacy field names from older activity records are
accepted as validation aliases of the canonical fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Self

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    ValidationError,
    model_validator,
)

from ghg_engine.db.models import ActivityType


class PayloadValidationError(ValueError):
    """An activity payload does not match its activity type's schema."""

    def __init__(self, activity_type: str, errors: list[str]) -> None:
        self.activity_type = activity_type
        self.errors = errors
        super().__init__(f"Invalid {activity_type} payload: {'; '.join(errors)}")


class ActivityPayload(BaseModel):
    """Fields shared by every activity payload."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        protected_namespaces=(),
    )

    source_id: str | None = None
    source_description: str | None = None
    external_id: str | None = None
    # Recorded by older clients; the registered formula decides the method
    calculation_method: str | None = None


# ---------------------------------------------------------------------------
# Scope 1: combustion
# ---------------------------------------------------------------------------


class StationaryCombustionPayload(ActivityPayload):
    fuel_type: str = Field(
        min_length=1, validation_alias=AliasChoices("fuel_type", "fuel_combusted")
    )
    quantity: float = Field(
        ge=0.0, validation_alias=AliasChoices("quantity", "quantity_combusted")
    )
    units: str = "MMBtu"
    is_biomass: bool | None = None


class MobileSourcesPayload(ActivityPayload):
    vehicle_type: str = Field(min_length=1)
    fuel_type: str | None = None
    model_year: int | None = Field(
        default=None, ge=1900, le=2100, validation_alias=AliasChoices("model_year", "vehicle_year")
    )
    fuel_usage: NonNegativeFloat = 0.0
    fuel_units: str | None = Field(
        default=None, validation_alias=AliasChoices("fuel_units", "units")
    )
    mileage: NonNegativeFloat = Field(
        default=0.0, validation_alias=AliasChoices("mileage", "miles_traveled")
    )
    distance_units: str = "miles"
    biodiesel_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    ethanol_percent: float = Field(default=0.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def _check_blend(self) -> Self:
        if self.biodiesel_percent + self.ethanol_percent > 100.0:
            raise ValueError("biodiesel_percent + ethanol_percent cannot exceed 100")
        return self


# ---------------------------------------------------------------------------
# Scope 1: refrigerants and fire suppressants
# ---------------------------------------------------------------------------

MassUnit = Literal["kg", "lb"]


class _RefrigerantGas(ActivityPayload):
    refrigerant_type: str = Field(min_length=1)
    amount_units: MassUnit = "kg"

    @property
    def gas_type(self) -> str:
        return self.refrigerant_type


class _SuppressantGas(ActivityPayload):
    suppressant_type: str = Field(min_length=1)
    amount_units: MassUnit = "lb"

    @property
    def gas_type(self) -> str:
        return self.suppressant_type


class _ReleasedAmount(BaseModel):
    amount_released: float = Field(ge=0.0)


class _MaterialBalance(BaseModel):
    """Signed end-minus-start deltas plus net purchases."""

    inventory_change: float = 0.0
    transferred_amount: float = 0.0
    capacity_change: float = 0.0


class _SimplifiedMaterialBalance(BaseModel):
    new_units_charge: NonNegativeFloat = 0.0
    new_units_capacity: NonNegativeFloat = 0.0
    existing_units_recharge: NonNegativeFloat = 0.0
    disposed_units_capacity: NonNegativeFloat = 0.0
    disposed_units_recovered: NonNegativeFloat = 0.0


class RefrigerationPayload(_ReleasedAmount, _RefrigerantGas):
    pass


class RefrigerationMaterialBalancePayload(_MaterialBalance, _RefrigerantGas):
    pass


class RefrigerationSimplifiedPayload(_SimplifiedMaterialBalance, _RefrigerantGas):
    pass


class RefrigerationScreeningPayload(_RefrigerantGas):
    equipment_type: str | None = None
    new_units_charge: NonNegativeFloat = 0.0
    operating_units_capacity: NonNegativeFloat = 0.0
    disposed_units_capacity: NonNegativeFloat = 0.0


class FireSuppressionPayload(_ReleasedAmount, _SuppressantGas):
    pass


class FireSuppressionMaterialBalancePayload(_MaterialBalance, _SuppressantGas):
    pass


class FireSuppressionSimplifiedPayload(_SimplifiedMaterialBalance, _SuppressantGas):
    pass


class FireSuppressionScreeningPayload(_SuppressantGas):
    equipment_type: Literal["Fixed", "Portable"] = "Fixed"
    unit_capacity: NonNegativeFloat = Field(
        default=0.0, validation_alias=AliasChoices("unit_capacity", "unit_capacity_lb")
    )


class PurchasedGasesPayload(ActivityPayload):
    gas_type: str = Field(min_length=1)
    amount_purchased: float = Field(ge=0.0)
    amount_units: MassUnit = "lb"


# ---------------------------------------------------------------------------
# Scope 2
# ---------------------------------------------------------------------------


class ElectricityPayload(ActivityPayload):
    """Purchased electricity; supplier factors are lb per MWh."""

    kwh_purchased: float = Field(ge=0.0)
    energy_units: Literal["kWh", "MWh"] = "kWh"
    grid_region: str | None = Field(
        default=None, validation_alias=AliasChoices("grid_region", "facility_location")
    )
    source_area_sqft: NonNegativeFloat | None = None
    market_based_co2_factor: float | None = Field(default=None, ge=0.0)
    market_based_ch4_factor: float | None = Field(default=None, ge=0.0)
    market_based_n2o_factor: float | None = Field(default=None, ge=0.0)


class SteamPayload(ActivityPayload):
    """Purchased steam or heat; factors are kg CO2 and g CH4/N2O per MMBtu."""

    amount_purchased: float = Field(ge=0.0)
    steam_units: str = Field(
        default="MMBtu", validation_alias=AliasChoices("steam_units", "amount_units")
    )
    fuel_type: str = "Natural Gas"
    boiler_efficiency_percent: float | None = Field(
        default=None,
        gt=0.0,
        le=100.0,
        validation_alias=AliasChoices("boiler_efficiency_percent", "boiler_efficiency"),
    )
    source_area_sqft: NonNegativeFloat | None = None
    location_based_co2_factor: float | None = Field(default=None, ge=0.0)
    location_based_ch4_factor: float | None = Field(default=None, ge=0.0)
    location_based_n2o_factor: float | None = Field(default=None, ge=0.0)
    market_based_co2_factor: float | None = Field(default=None, ge=0.0)
    market_based_ch4_factor: float | None = Field(default=None, ge=0.0)
    market_based_n2o_factor: float | None = Field(default=None, ge=0.0)


# ---------------------------------------------------------------------------
# Scope 3
# ---------------------------------------------------------------------------


class TravelPayload(ActivityPayload):
    """Passenger travel or commuting distance for one mode."""

    vehicle_type: str = Field(min_length=1)
    distance: float = Field(ge=0.0, validation_alias=AliasChoices("distance", "miles_traveled"))
    distance_units: Literal["miles", "km"] = "miles"


class HotelPayload(ActivityPayload):
    num_nights: float = Field(ge=0.0)
    num_rooms: int = Field(default=1, ge=1)
    hotel_type: str = "Standard"


class VehicleMilesPayload(ActivityPayload):
    vehicle_type: str = Field(min_length=1)
    vehicle_miles: float = Field(ge=0.0)


class TonMilesPayload(ActivityPayload):
    vehicle_type: str = Field(min_length=1)
    short_ton_miles: float = Field(ge=0.0)


class WastePayload(ActivityPayload):
    waste_material: str = Field(
        min_length=1, validation_alias=AliasChoices("waste_material", "waste_type")
    )
    disposal_method: str = Field(min_length=1)
    amount: float = Field(ge=0.0, validation_alias=AliasChoices("amount", "weight"))
    units: Literal["short ton", "metric ton", "kg", "lb"] = Field(
        default="short ton", validation_alias=AliasChoices("units", "amount_units", "unit")
    )


class OffsetsPayload(ActivityPayload):
    amount_mtco2e: float = Field(ge=0.0)
    offset_type: str | None = None
    registry_reference: str | None = None
    certification_standard: str | None = None


# ---------------------------------------------------------------------------
# Tagged lookup
# ---------------------------------------------------------------------------

PAYLOAD_SCHEMAS: dict[ActivityType, type[ActivityPayload]] = {
    ActivityType.STATIONARY_COMBUSTION: StationaryCombustionPayload,
    ActivityType.MOBILE_SOURCES: MobileSourcesPayload,
    ActivityType.REFRIGERATION_AC: RefrigerationPayload,
    ActivityType.REFRIGERATION_AC_MATERIAL_BALANCE: RefrigerationMaterialBalancePayload,
    ActivityType.REFRIGERATION_AC_SIMPLIFIED_MATERIAL_BALANCE: RefrigerationSimplifiedPayload,
    ActivityType.REFRIGERATION_AC_SCREENING_METHOD: RefrigerationScreeningPayload,
    ActivityType.FIRE_SUPPRESSION: FireSuppressionPayload,
    ActivityType.FIRE_SUPPRESSION_MATERIAL_BALANCE: FireSuppressionMaterialBalancePayload,
    ActivityType.FIRE_SUPPRESSION_SIMPLIFIED_MATERIAL_BALANCE: FireSuppressionSimplifiedPayload,
    ActivityType.FIRE_SUPPRESSION_SCREENING_METHOD: FireSuppressionScreeningPayload,
    ActivityType.PURCHASED_GASES: PurchasedGasesPayload,
    ActivityType.ELECTRICITY: ElectricityPayload,
    ActivityType.STEAM: SteamPayload,
    ActivityType.BUSINESS_TRAVEL_PERSONAL_CAR: TravelPayload,
    ActivityType.BUSINESS_TRAVEL_RAIL_BUS: TravelPayload,
    ActivityType.BUSINESS_TRAVEL_AIR: TravelPayload,
    ActivityType.BUSINESS_TRAVEL_HOTEL: HotelPayload,
    ActivityType.EMPLOYEE_COMMUTING_PERSONAL_CAR: TravelPayload,
    ActivityType.EMPLOYEE_COMMUTING_PUBLIC_TRANSPORT: TravelPayload,
    ActivityType.UPSTREAM_TRANS_DIST_VEHICLE_MILES: VehicleMilesPayload,
    ActivityType.UPSTREAM_TRANS_DIST_TON_MILES: TonMilesPayload,
    ActivityType.WASTE: WastePayload,
    ActivityType.OFFSETS: OffsetsPayload,
}


def parse_payload(activity_type: ActivityType | str, raw: Mapping[str, Any]) -> ActivityPayload:
    """Validate *raw* against the schema registered for *activity_type*.

    Raises:
        PayloadValidationError: For unknown activity types or invalid fields.
    """
    try:
        resolved_type = ActivityType(activity_type)
    except ValueError:
        raise PayloadValidationError(str(activity_type), ["unknown activity type"]) from None

    schema = PAYLOAD_SCHEMAS[resolved_type]
    try:
        return schema.model_validate(dict(raw))
    except ValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in error['loc']) or '<payload>'}: {error['msg']}"
            for error in exc.errors(include_url=False)
        ]
        raise PayloadValidationError(resolved_type.value, messages) from exc
