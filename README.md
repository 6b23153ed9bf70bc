# groupbot

The logic behind a set of group chat features, with no tie to any chat
protocol. Each module covers one feature. It takes plain values such as group
ids, user ids, dates and a random generator, and returns text, records or
images for a bot front end to send.

## Modules

| Module | What it does |
| --- | --- |
| `groupbot.wordle` | Word guessing game with boards of five, six or seven letters, rendered as PNG |
| `groupbot.runcode` | Runs code snippets on an online compiler service and trims long output |
| `groupbot.registry` | Daily marriage registry for each group, kept in SQLite |
| `groupbot.qqwife` | Rules of the daily "marry a group member" game, a per-member cooldown and name trimming |
| `groupbot.reborn` | Weighted random "reincarnation" into a country and a gender |
| `groupbot.wordcount` | Hot-word counting over chat messages, with stop words |
| `groupbot.score` | Daily sign-in, score levels and a leaderboard, kept in SQLite |
| `groupbot.shadiao` | Fetches and parses short phrases, jokes and insults from public web services |
| `groupbot.sleep` | Good-morning and good-night ranking with sleep and awake durations |
| `groupbot.tarot` | Major arcana draws, card meanings and spreads |
| `groupbot.wtf` | A catalogue of name-based quiz generators and their results |
| `groupbot.vtb` | Stores and browses a three-level catalogue of voice quotes |
| `groupbot.ymgal` | Stores, searches and scrapes galgame picture sets |

## Examples

### Wordle

```python
from groupbot.wordle import WordleGame, load_word_list, UnknownWordError

dictionary = load_word_list("apple\ngrape\nlemon\nmelon\n")
game = WordleGame("lemon", dictionary)

try:
    won = game.guess("melon")
except UnknownWordError:
    print("no such word")

png_bytes = game.render()
```

`WordleGame.guess` returns whether the guess was the target. A failed guess
raises `LengthNotEnoughError`, `UnknownWordError` or, when the last attempt
is used up, `TimesRunOutError`; all derive from `WordleError`. The game
allows one more attempt than the word has letters. `class_for_name` maps
`五阶`, `六阶`, `七阶` (and the empty string) to a word length, and
`WordleGame.grid` returns the board as rows of `(letter, LetterState)` cells.

### Running code

```python
import requests
from groupbot.runcode import lookup_language, run_code, CodeRunError

run_type = lookup_language("python")
with requests.Session() as session:
    try:
        print(run_code('print("hi")', run_type, session))
    except CodeRunError as exc:
        print("failed:", exc)
```

`lookup_language` and `template_for` raise `UnsupportedLanguageError` for a
language the service does not support. The token sent to the service is read
from the `GROUPBOT_RUNCODE_TOKEN` environment variable. Output is cut after
30 lines or about 1000 characters.

### Marriage registry and game rules

```python
import random
from datetime import date
from groupbot.registry import MarriageRegistry
from groupbot.qqwife import propose, check_proposal

registry = MarriageRegistry("marriages.db")
today = date.today()
names = {42: "Alice", 43: "Bob"}

refusal = check_proposal(registry, 1001, 42, 43, today)
if refusal is None:
    print(propose(registry, 1001, 42, 43, "娶", names, today, random.Random()))
print(registry.roster(1001))
registry.close()
```

`groupbot.qqwife` also has `draw_wife`, `become_mistress`, `divorce` and
their checks `check_mistress` and `check_divorce`. `names` may be a mapping
or a callable from user id to display name. `Cooldown` allows one use per
member in each period (twelve hours by default), and `slice_name` shortens a
name whose measured width is too large.

### Tarot

```python
import random
from groupbot.tarot import TarotDeck

cards_json = '{"0": {"name": "愚者(The Fool)", "info": {"description": "...", "reverseDescription": "...", "imgUrl": "0.png"}}}'
formations_json = '{"圣三角": {"cards_num": 3, "is_cut": false, "represent": [["过去", "现在", "未来"]]}}'

deck = TarotDeck.from_json(cards_json, formations_json)
for drawn in deck.draw(3, random.Random()):
    print(drawn.position, drawn.name, drawn.image_url)
print(deck.explain("愚者").description)
text, cards = deck.spread("圣三角", "Alice", random.Random())
```

### Sign-in scores

```python
from datetime import datetime
from groupbot.score import ScoreDB, sign_in

db = ScoreDB("score.db")
result = sign_in(db, 42, datetime.now())
print(result.score, result.level, result.already_signed)
print(db.top_scores(10))
db.close()
```

### Sleep tracking

```python
from datetime import datetime
from groupbot.sleep import SleepDB, good_night_text

db = SleepDB("sleep.db")
position, awake = db.sleep(1001, 42, datetime.now())
print(good_night_text(position, awake))
db.close()
```

### Hot words

```python
from groupbot.wordcount import count_words, rank_by_word_count, load_stopwords

stopwords = load_stopwords("的\n了\n")
counts = count_words(messages, segment=my_segmenter, stopwords=stopwords)
print(rank_by_word_count(counts)[:20])
```

The word segmenter is supplied by the caller.

## Network access

These functions make HTTP requests: `run_code`, the `fetch_*` functions in
`groupbot.shadiao`, `Wtf.predict`, `score.fetch_background`,
`VtbDB.fetch_vtb_list`, `VtbDB.fetch_vtb` and `ymgal.update_pictures`. Each
takes an optional `requests.Session` and opens a new one when none is given.
The parsing functions beside them, such as `parse_phrase`, `parse_result`,
`parse_response` and `parse_picset_ids`, work on data you already have and
make no requests.

## What this package does not do

It contains no bot: it does not connect to a chat service, match commands,
send messages or download its data files (word lists, tarot JSON, rate
tables). It draws only the wordle board; sign-in cards, the marriage roster
image and leaderboard or hot-word charts are left to the front end.