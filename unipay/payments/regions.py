"""
Region and Country Constants
Static geography table used to resolve a country to its payment region.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

# Regions
REGION_SOUTH_ASIA = 'south-asia'
REGION_SOUTHEAST_ASIA = 'southeast-asia'
REGION_EAST_ASIA = 'east-asia'
REGION_NORTH_AMERICA = 'north-america'
REGION_EUROPE = 'europe'
REGION_MIDDLE_EAST = 'middle-east'
REGION_AFRICA = 'africa'
REGION_OCEANIA = 'oceania'
REGION_LATIN_AMERICA = 'latin-america'
REGION_GLOBAL = 'global'

# Countries (ISO 3166-1 alpha-2)
COUNTRY_NEPAL = 'NP'
COUNTRY_INDIA = 'IN'
COUNTRY_PAKISTAN = 'PK'
COUNTRY_BANGLADESH = 'BD'
COUNTRY_SRI_LANKA = 'LK'

COUNTRY_SINGAPORE = 'SG'
COUNTRY_MALAYSIA = 'MY'
COUNTRY_INDONESIA = 'ID'
COUNTRY_THAILAND = 'TH'
COUNTRY_PHILIPPINES = 'PH'
COUNTRY_VIETNAM = 'VN'

COUNTRY_CHINA = 'CN'
COUNTRY_JAPAN = 'JP'
COUNTRY_SOUTH_KOREA = 'KR'

COUNTRY_USA = 'US'
COUNTRY_CANADA = 'CA'
COUNTRY_MEXICO = 'MX'

COUNTRY_UK = 'GB'
COUNTRY_GERMANY = 'DE'
COUNTRY_FRANCE = 'FR'
COUNTRY_SPAIN = 'ES'
COUNTRY_ITALY = 'IT'

COUNTRY_UAE = 'AE'
COUNTRY_SAUDI_ARABIA = 'SA'

COUNTRY_NIGERIA = 'NG'
COUNTRY_SOUTH_AFRICA = 'ZA'
COUNTRY_KENYA = 'KE'

COUNTRY_AUSTRALIA = 'AU'
COUNTRY_NEW_ZEALAND = 'NZ'

COUNTRY_BRAZIL = 'BR'
COUNTRY_ARGENTINA = 'AR'

COUNTRY_GLOBAL = 'GLOBAL'


@dataclass(frozen=True)
class RegionInfo:
    """Metadata about a payment region."""
    region: str
    countries: tuple
    default_currency: str
    description: str = ''

    def to_dict(self) -> Dict[str, object]:
        return {
            'region': self.region,
            'countries': list(self.countries),
            'default_currency': self.default_currency,
            'description': self.description,
        }


REGIONS: Dict[str, RegionInfo] = {
    REGION_SOUTH_ASIA: RegionInfo(
        region=REGION_SOUTH_ASIA,
        countries=(COUNTRY_NEPAL, COUNTRY_INDIA, COUNTRY_PAKISTAN,
                   COUNTRY_BANGLADESH, COUNTRY_SRI_LANKA),
        default_currency='INR',
        description='South Asia',
    ),
    REGION_SOUTHEAST_ASIA: RegionInfo(
        region=REGION_SOUTHEAST_ASIA,
        countries=(COUNTRY_SINGAPORE, COUNTRY_MALAYSIA, COUNTRY_INDONESIA,
                   COUNTRY_THAILAND, COUNTRY_PHILIPPINES, COUNTRY_VIETNAM),
        default_currency='SGD',
        description='Southeast Asia',
    ),
    REGION_EAST_ASIA: RegionInfo(
        region=REGION_EAST_ASIA,
        countries=(COUNTRY_CHINA, COUNTRY_JAPAN, COUNTRY_SOUTH_KOREA),
        default_currency='CNY',
        description='East Asia',
    ),
    REGION_NORTH_AMERICA: RegionInfo(
        region=REGION_NORTH_AMERICA,
        countries=(COUNTRY_USA, COUNTRY_CANADA, COUNTRY_MEXICO),
        default_currency='USD',
        description='North America',
    ),
    REGION_EUROPE: RegionInfo(
        region=REGION_EUROPE,
        countries=(COUNTRY_UK, COUNTRY_GERMANY, COUNTRY_FRANCE,
                   COUNTRY_SPAIN, COUNTRY_ITALY),
        default_currency='EUR',
        description='Europe',
    ),
    REGION_MIDDLE_EAST: RegionInfo(
        region=REGION_MIDDLE_EAST,
        countries=(COUNTRY_UAE, COUNTRY_SAUDI_ARABIA),
        default_currency='AED',
        description='Middle East',
    ),
    REGION_AFRICA: RegionInfo(
        region=REGION_AFRICA,
        countries=(COUNTRY_NIGERIA, COUNTRY_SOUTH_AFRICA, COUNTRY_KENYA),
        default_currency='USD',
        description='Africa',
    ),
    REGION_OCEANIA: RegionInfo(
        region=REGION_OCEANIA,
        countries=(COUNTRY_AUSTRALIA, COUNTRY_NEW_ZEALAND),
        default_currency='AUD',
        description='Oceania',
    ),
    REGION_LATIN_AMERICA: RegionInfo(
        region=REGION_LATIN_AMERICA,
        countries=(COUNTRY_BRAZIL, COUNTRY_ARGENTINA),
        default_currency='USD',
        description='Latin America',
    ),
}

# Reverse lookup, built once from REGIONS
COUNTRY_TO_REGION: Dict[str, str] = {
    country: info.region
    for info in REGIONS.values()
    for country in info.countries
}


def get_region(country: str) -> str:
    """
    Get the region a country belongs to.

    Args:
        country: Country code

    Returns:
        Region code, or REGION_GLOBAL for unknown countries
    """
    return COUNTRY_TO_REGION.get(country, REGION_GLOBAL)


def get_countries_in_region(region: str) -> List[str]:
    """
    Get all countries in a region.

    Args:
        region: Region code

    Returns:
        List of country codes (empty for unknown regions)
    """
    info = REGIONS.get(region)
    if info is None:
        return []
    return list(info.countries)


def get_region_info(region: str) -> Optional[RegionInfo]:
    return REGIONS.get(region)
