"""Team name dictionary used by the card text parser.

Order matters: the parser returns the first entry contained in a line, so
full names come before the short names they contain ("Golden State Warriors"
wins over "Warriors"). A line only matches an entry it contains; a partial
form such as "Los Angeles" on its own matches nothing.
"""

TEAM_NAMES: tuple[str, ...] = (
    "Los Angeles Lakers", "Chicago Bulls", "Golden State Warriors",
    "Boston Celtics", "Miami Heat", "Milwaukee Bucks", "Dallas Mavericks",
    "Denver Nuggets", "Phoenix Suns", "Philadelphia 76ers", "Brooklyn Nets",
    "Portland Trail Blazers", "Memphis Grizzlies", "New Orleans Pelicans",
    "Minnesota Timberwolves", "San Antonio Spurs", "Houston Rockets",
    "LA Clippers", "Sacramento Kings", "Utah Jazz", "Oklahoma City Thunder",
    "Orlando Magic", "Detroit Pistons", "Charlotte Hornets", "Washington Wizards",
    "Atlanta Hawks", "New York Knicks", "Indiana Pacers", "Cleveland Cavaliers",
    "Toronto Raptors",
    "Lakers", "Bulls", "Warriors", "Celtics", "Heat", "Bucks", "Mavericks",
    "Nuggets", "Suns", "76ers", "Nets", "Trail Blazers", "Grizzlies",
    "Pelicans", "Timberwolves", "Spurs", "Rockets", "Clippers", "Kings",
    "Jazz", "Thunder", "Magic", "Pistons", "Hornets", "Wizards",
    "Hawks", "Knicks", "Pacers", "Cavaliers", "Raptors",
)
