from domain.vehicle import ChassisNo

AXIO = ChassisNo("NZE141-1234567")
PREMIO = ChassisNo("ZRE152-7654321")
VEZEL = ChassisNo("RU3-1112223")
FIT = ChassisNo("GP5-3004005")
