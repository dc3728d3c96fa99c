"""SEEK search-results selectors and location slugs.

SEEK reshuffles its markup often. Card selectors are tried in order and the
first one that matches anything wins; field selectors are comma-joined so
the first matching element in document order is used.
"""

SEEK_BASE_URL = "https://www.seek.com.au"

# --- Result count ---
RESULT_COUNT_SELECTORS: tuple[str, ...] = (
    '[data-automation="totalJobsCount"]',
    "h1",
    '[class*="jobCount"], [class*="job-count"], [class*="totalJobs"]',
)
CARD_COUNT_SELECTOR = '[data-automation="normalJob"], [data-card-type="JobCard"], article[data-testid]'

# --- Job cards ---
JOB_CARD_SELECTORS: tuple[str, ...] = (
    '[data-automation="normalJob"]',
    '[data-card-type="JobCard"]',
    "article[data-testid]",
    '[class*="JobCard"]',
    '[role="article"]',
)

# --- Card fields ---
TITLE_SELECTOR = '[data-automation="jobTitle"], a[class*="jobTitle"], h3 a, [class*="title"] a'
COMPANY_SELECTOR = '[data-automation="jobCompany"], [class*="company"], [class*="advertiser"]'
SALARY_SELECTOR = '[data-automation="jobSalary"], [class*="salary"]'
LOCATION_SELECTOR = '[data-automation="jobLocation"], [class*="location"]'
TAG_SELECTOR = '[class*="tag"], [class*="badge"], [class*="benefit"]'

# --- Location slugs (substring match, first hit wins) ---
CITY_SLUGS: tuple[tuple[str, str], ...] = (
    ("sydney", "All-Sydney-NSW"),
    ("melbourne", "All-Melbourne-VIC"),
    ("brisbane", "All-Brisbane-QLD"),
    ("perth", "All-Perth-WA"),
    ("adelaide", "All-Adelaide-SA"),
    ("canberra", "All-Canberra-ACT"),
    ("hobart", "All-Hobart-TAS"),
    ("darwin", "All-Darwin-NT"),
    ("gold coast", "All-Gold-Coast-QLD"),
    ("newcastle", "All-Newcastle-Maitland-Hunter-NSW"),
)
# State abbreviations match whole words only so "wa" does not hit "Hawthorn".
STATE_SLUGS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("nsw", "new south wales"), "New-South-Wales"),
    (("vic", "victoria"), "Victoria"),
    (("qld", "queensland"), "Queensland"),
    (("wa", "western australia"), "Western-Australia"),
    (("sa", "south australia"), "South-Australia"),
)
NATIONWIDE_KEYWORDS: tuple[str, ...] = ("remote", "australia")
DEFAULT_LOCATION_SLUG = "All-Australia"
