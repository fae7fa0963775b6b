"""
Static lookup data for channels, vendors and pricing.

Vendor detection is table driven: VENDOR_LOOKUP maps a canonical lowercase
token to its channel and display name. Checks happen in the order of
VENDOR_GROUP_ORDER, then against TV networks, then fall back to TV.
"""

from typing import Dict, List, NamedTuple, Tuple

from models.data_models import Channel, CostMethod


class VendorEntry(NamedTuple):
    """Channel and display name for a known vendor token."""
    channel: Channel
    display_name: str


class RateRange(NamedTuple):
    """Benchmark pricing for a channel."""
    cost_method: CostMethod
    min_rate: float
    max_rate: float


class InventoryListing(NamedTuple):
    """Programming available for a genre of TV inventory."""
    keywords: Tuple[str, ...]
    title: str
    programs: Tuple[str, ...]
    suggested_replies: Tuple[str, ...]


# Channel keywords accepted by "add <channel>"
CHANNEL_KEYWORDS: Dict[str, Channel] = {
    'search': Channel.SEARCH,
    'social': Channel.SOCIAL,
    'display': Channel.DISPLAY,
    'native': Channel.DISPLAY,
    'tv': Channel.TV,
    'ctv': Channel.TV,
    'connected tv': Channel.TV,
    'linear tv': Channel.TV,
    'video': Channel.TV,
    'radio': Channel.RADIO,
    'streaming audio': Channel.STREAMING_AUDIO,
    'audio': Channel.STREAMING_AUDIO,
    'podcast': Channel.PODCAST,
    'podcasts': Channel.PODCAST,
    'place-based audio': Channel.PLACE_BASED_AUDIO,
    'place-based': Channel.PLACE_BASED_AUDIO,
    'in-store': Channel.PLACE_BASED_AUDIO,
    'ooh': Channel.OOH,
    'dooh': Channel.OOH,
}

SOCIAL_PLATFORMS: Dict[str, str] = {
    'meta': 'Meta',
    'facebook': 'Facebook',
    'instagram': 'Instagram',
    'tiktok': 'TikTok',
    'snapchat': 'Snapchat',
    'snap': 'Snapchat',
    'twitter': 'X (Twitter)',
    'x': 'X (Twitter)',
    'linkedin': 'LinkedIn',
    'pinterest': 'Pinterest',
    'reddit': 'Reddit',
    'threads': 'Threads',
}

SEARCH_PLATFORMS: Dict[str, str] = {
    'google': 'Google Ads',
    'google ads': 'Google Ads',
    'google search': 'Google Ads',
    'bing': 'Microsoft Ads',
    'bing ads': 'Microsoft Ads',
    'microsoft': 'Microsoft Ads',
    'microsoft ads': 'Microsoft Ads',
    'yahoo': 'Yahoo Ads',
    'yahoo ads': 'Yahoo Ads',
}

DISPLAY_PLATFORMS: Dict[str, str] = {
    'dv360': 'DV360',
    'thetradedesk': 'The Trade Desk',
    'the trade desk': 'The Trade Desk',
    'ttd': 'The Trade Desk',
    'amazon dsp': 'Amazon DSP',
    'xandr': 'Xandr',
    'mediamath': 'MediaMath',
}

STREAMING_AUDIO_PLATFORMS: Dict[str, str] = {
    'spotify': 'Spotify',
    'pandora': 'Pandora',
    'sonos': 'Sonos',
    'amazon music': 'Amazon Music',
    'apple music': 'Apple Music',
    'deezer': 'Deezer',
    'tidal': 'Tidal',
}

PODCAST_PLATFORMS: Dict[str, str] = {
    'spotify podcasts': 'Spotify Podcasts',
    'apple podcasts': 'Apple Podcasts',
    'megaphone': 'Megaphone',
    'acast': 'Acast',
    'art19': 'Art19',
    'podbean': 'Podbean',
    'libsyn': 'Libsyn',
    'simplecast': 'Simplecast',
}

PLACE_BASED_AUDIO_PLATFORMS: Dict[str, str] = {
    'vibenomics': 'Vibenomics',
    'mood media': 'Mood Media',
    'mood': 'Mood Media',
    'rockbot': 'Rockbot',
    'soundtrack your brand': 'Soundtrack Your Brand',
}

RADIO_PLATFORMS: Dict[str, str] = {
    'iheartradio': 'iHeartRadio',
    'siriusxm': 'SiriusXM',
    'sirius': 'SiriusXM',
    'audacy': 'Audacy',
    'cumulus': 'Cumulus',
    'kroq': 'KROQ',
    'kiis': 'KIIS-FM',
    'entercom': 'Entercom',
}

# Digital video sells as TV inventory
VIDEO_PLATFORMS: Dict[str, str] = {
    'youtube': 'YouTube',
    'vimeo': 'Vimeo',
    'twitch': 'Twitch',
}

VENDOR_GROUP_ORDER: List[Tuple[Channel, Dict[str, str]]] = [
    (Channel.SOCIAL, SOCIAL_PLATFORMS),
    (Channel.SEARCH, SEARCH_PLATFORMS),
    (Channel.DISPLAY, DISPLAY_PLATFORMS),
    (Channel.STREAMING_AUDIO, STREAMING_AUDIO_PLATFORMS),
    (Channel.PODCAST, PODCAST_PLATFORMS),
    (Channel.PLACE_BASED_AUDIO, PLACE_BASED_AUDIO_PLATFORMS),
    (Channel.RADIO, RADIO_PLATFORMS),
    (Channel.TV, VIDEO_PLATFORMS),
]


def _build_vendor_lookup() -> Dict[str, VendorEntry]:
    lookup: Dict[str, VendorEntry] = {}
    for channel, platforms in VENDOR_GROUP_ORDER:
        for token, display_name in platforms.items():
            # First group wins when a token appears twice
            lookup.setdefault(token, VendorEntry(channel, display_name))
    return lookup


VENDOR_LOOKUP: Dict[str, VendorEntry] = _build_vendor_lookup()

# Ordered: longer names first so "espn2" is found before "espn"
TV_NETWORKS: List[Tuple[str, str]] = [
    ('amazon prime', 'Amazon Prime'),
    ('apple tv', 'Apple TV'),
    ('discovery', 'Discovery'),
    ('paramount', 'Paramount+'),
    ('netflix', 'Netflix'),
    ('peacock', 'Peacock'),
    ('espn2', 'ESPN2'),
    ('msnbc', 'MSNBC'),
    ('bravo', 'Bravo'),
    ('disney', 'Disney'),
    ('sling', 'Sling'),
    ('espn', 'ESPN'),
    ('hgtv', 'HGTV'),
    ('hulu', 'Hulu'),
    ('roku', 'Roku'),
    ('tubi', 'Tubi'),
    ('pluto', 'Pluto'),
    ('dazn', 'DAZN'),
    ('cbs', 'CBS'),
    ('nbc', 'NBC'),
    ('abc', 'ABC'),
    ('fox', 'FOX'),
    ('cnn', 'CNN'),
    ('tlc', 'TLC'),
    ('tnt', 'TNT'),
    ('hbo', 'HBO'),
    ('nfl', 'NFL'),
    ('nba', 'NBA'),
    ('mlb', 'MLB'),
    ('nhl', 'NHL'),
    ('f1', 'F1 TV'),
]

TV_NETWORK_NAMES: Dict[str, str] = dict(TV_NETWORKS)

# Tokens that "add <token>" resolves through the channel rule
ADDABLE_NETWORK_TOKENS: List[str] = [
    'espn2', 'espn', 'cbs', 'nbc', 'abc', 'fox', 'cnn', 'msnbc', 'hgtv',
    'discovery', 'tlc', 'bravo', 'tnt', 'netflix', 'hulu', 'disney', 'hbo',
    'paramount', 'peacock', 'youtube', 'roku', 'tubi', 'pluto', 'f1',
    'dazn', 'sling', 'nfl', 'nba', 'mlb', 'nhl',
]

# Checked before any placement is created. Order matters: the first hit wins.
UNSUPPORTED_CHANNELS: List[str] = [
    'print', 'newspaper', 'magazine', 'direct mail', 'mailer', 'flyer',
    'email', 'sms', 'text message', 'telemarketing', 'cold call',
    'billboard', 'cinema', 'movie theater',
]

UNSUPPORTED_ALTERNATIVES: Dict[str, str] = {
    'print': 'Try digital display or OOH (out-of-home) instead',
    'newspaper': 'Try digital display or local news streaming instead',
    'magazine': 'Try digital display or podcast sponsorships instead',
    'email': 'Email campaigns are handled separately - this tool focuses on media placements',
    'billboard': 'Try "add OOH" for digital out-of-home placements',
}

DEFAULT_ALTERNATIVE = 'Try Search, Social, Display, TV, Radio, or OOH channels instead'

SUPPORTED_CHANNEL_NAMES = (
    'Search, Social, Display, TV, Radio, Streaming Audio, Podcast, OOH'
)

# 2024-2025 industry benchmarks
RATE_RANGES: Dict[Channel, RateRange] = {
    Channel.SEARCH: RateRange(CostMethod.CPC, 1.5, 8.0),
    Channel.SOCIAL: RateRange(CostMethod.CPM, 5.0, 15.0),
    Channel.DISPLAY: RateRange(CostMethod.CPM, 2.5, 12.0),
    Channel.TV: RateRange(CostMethod.CPM, 15.0, 35.0),
    Channel.RADIO: RateRange(CostMethod.CPM, 8.0, 15.0),
    Channel.STREAMING_AUDIO: RateRange(CostMethod.CPM, 15.0, 25.0),
    Channel.PODCAST: RateRange(CostMethod.CPM, 18.0, 60.0),
    Channel.PLACE_BASED_AUDIO: RateRange(CostMethod.CPM, 5.0, 15.0),
    Channel.OOH: RateRange(CostMethod.CPM, 2.0, 15.0),
    Channel.PRINT: RateRange(CostMethod.FLAT, 500.0, 10000.0),
}

DEFAULT_VENDORS: Dict[Channel, List[str]] = {
    Channel.SEARCH: ['Google Ads', 'Microsoft Ads', 'Amazon Ads'],
    Channel.SOCIAL: ['Meta', 'TikTok', 'LinkedIn', 'Snapchat', 'Pinterest', 'X (Twitter)'],
    Channel.DISPLAY: ['Google Display Network', 'Taboola', 'Outbrain', 'Criteo', 'The Trade Desk'],
    Channel.TV: ['Linear TV', 'CTV'],
    Channel.RADIO: ['iHeartRadio', 'SiriusXM', 'Audacy', 'Cumulus'],
    Channel.STREAMING_AUDIO: ['Spotify', 'Pandora', 'Amazon Music', 'Apple Music', 'Sonos'],
    Channel.PODCAST: ['Spotify Podcasts', 'Apple Podcasts', 'Megaphone', 'Acast', 'Art19'],
    Channel.PLACE_BASED_AUDIO: ['Vibenomics', 'Mood Media', 'Rockbot', 'Soundtrack Your Brand'],
    Channel.OOH: ['Clear Channel', 'Lamar', 'Outfront Media', 'JCDecaux'],
    Channel.PRINT: ['The New York Times', 'WSJ', 'USA Today', 'Local Newspapers'],
}

AD_UNITS: Dict[Channel, List[str]] = {
    Channel.SEARCH: ['Responsive Search Ad', 'Exact Match Keyword', 'Shopping Ad'],
    Channel.SOCIAL: ['Newsfeed Image', 'Story Video', 'Carousel', 'Reels'],
    Channel.DISPLAY: ['300x250', '728x90', '160x600', 'Native'],
    Channel.TV: [':30 Spot', ':15 Spot', 'Sponsorship'],
    Channel.RADIO: ['Audio Spot :30', 'Host Read', 'Live Read'],
    Channel.STREAMING_AUDIO: ['Audio :30', 'Audio :15', 'Companion Banner'],
    Channel.PODCAST: ['Host Read :60', 'Pre-roll :15', 'Mid-roll :30', 'Baked-in'],
    Channel.PLACE_BASED_AUDIO: ['In-Store Audio :15', 'In-Store Audio :30', 'Checkout Audio'],
    Channel.OOH: ['Digital Billboard', 'Transit Shelter', 'Highway Bulletin'],
    Channel.PRINT: ['Full Page Color', 'Half Page', 'Quarter Page'],
}

SEGMENTS: Dict[Channel, List[str]] = {
    Channel.SEARCH: ['High Intent', 'Brand Keywords', 'Competitor Conquesting'],
    Channel.SOCIAL: ['A18-34', 'Parents', 'Interest: Tech', 'Lookalike 1%'],
    Channel.DISPLAY: ['Retargeting', 'In-Market Auto', 'Affinity: Luxury'],
    Channel.TV: ['Broad Reach', 'Sports Fans', 'Morning News'],
    Channel.RADIO: ['Commuters', 'Drive Time', 'Morning Show'],
    Channel.STREAMING_AUDIO: ['Music Listeners', 'Workout', 'Commute', 'Focus'],
    Channel.PODCAST: ['True Crime', 'Business', 'Comedy', 'News & Politics'],
    Channel.PLACE_BASED_AUDIO: ['Grocery Shoppers', 'QSR Diners', 'Retail Shoppers'],
    Channel.OOH: ['Urban Centers', 'Highway Traffic'],
    Channel.PRINT: ['Affluent Readers', 'Local Community'],
}

CORE_DIGITAL_CHANNELS = (Channel.SEARCH, Channel.SOCIAL, Channel.DISPLAY)
OFFLINE_CHANNELS = (Channel.TV, Channel.RADIO, Channel.OOH, Channel.PRINT)
FILL_CHANNELS = (Channel.SOCIAL, Channel.DISPLAY)

# Answered for "what ... available / inventory" questions, first keyword hit wins
INVENTORY_LISTINGS: List[InventoryListing] = [
    InventoryListing(
        ('sports', 'football', 'nfl', 'nba'),
        "📺 Available Sports Programming",
        (
            'ESPN SportsCenter (2-5M viewers)',
            'ESPN Monday Night Football (12-15M viewers)',
            'NFL on Fox (15-20M viewers)',
            'NBC Sunday Night Football (18-22M viewers)',
            'NBC Premier League (1-3M viewers)',
        ),
        ('Add ESPN Monday Night Football', 'Add NBC Sunday Night Football'),
    ),
    InventoryListing(
        ('news', 'current events'),
        "📰 Available News Programming",
        (
            'CNN Prime Time (1-3M viewers)',
            'MSNBC Evening (1.5-2.5M viewers)',
            'NBC Nightly News (6-8M viewers)',
            'ABC World News Tonight (7-9M viewers)',
            'CBS Evening News (5-6M viewers)',
        ),
        ('Add CNN Prime Time', 'Add NBC Nightly News'),
    ),
    InventoryListing(
        ('drama', 'series'),
        "🎬 Available Drama Programming",
        (
            'NBC Chicago Fire (6-8M viewers)',
            'CBS FBI (6-7M viewers)',
            'ABC The Rookie (4-5M viewers)',
            'Hulu The Bear',
            'Paramount Yellowstone',
        ),
        ('Add NBC Chicago Fire', 'Add Paramount Yellowstone'),
    ),
    InventoryListing(
        ('comedy', 'sitcom', 'late night'),
        "😂 Available Comedy Programming",
        (
            'ABC Abbott Elementary (3-4M viewers)',
            'CBS Young Sheldon (6-8M viewers)',
            'NBC The Tonight Show (1.5-2M viewers)',
            'ABC Jimmy Kimmel Live (1.8-2.3M viewers)',
        ),
        ('Add ABC Abbott Elementary', 'Add NBC The Tonight Show'),
    ),
    InventoryListing(
        ('reality', 'competition'),
        "⭐ Available Reality Programming",
        (
            'NBC The Voice (6-8M viewers)',
            'CBS Survivor (6-7M viewers)',
            'HGTV Fixer Upper (2-3M viewers)',
            'Peacock Love Island',
        ),
        ('Add NBC The Voice', 'Add CBS Survivor'),
    ),
    InventoryListing(
        ('kids', 'family', 'children'),
        "👨‍👩‍👧 Available Kids & Family Programming",
        (
            'Disney Bluey (1-2M viewers)',
            'ABC America\'s Funniest Home Videos (3-4M viewers)',
            'Fox The Simpsons (2-3M viewers)',
        ),
        ('Add Disney Bluey', 'Add Fox The Simpsons'),
    ),
    InventoryListing(
        ('documentary', 'educational', 'nature'),
        "🌍 Available Documentary Programming",
        (
            'Discovery Planet Earth',
            'Netflix Our Planet',
            'Discovery How It\'s Made',
            'NBC Dateline (3-4M viewers)',
        ),
        ('Add Discovery Planet Earth', 'Add NBC Dateline'),
    ),
]

INVENTORY_GENRES = 'sports, news, drama, comedy, reality, kids & family, documentary'
