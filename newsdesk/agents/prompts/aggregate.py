"""
Aggregate-mode prompt templates (mustache).

Source lists are rendered with ``{{#sources}}...{{/sources}}`` sections, so a
template never references a slot that does not exist. Fields inside the loop
(``number``, ``accredit``, ``factsBitSplitting1`` ...) are the camelCase keys of
``Source``.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# Step 01: facts bit splitting (three branches)
# ═══════════════════════════════════════════════════════════════
SPLIT_PRIMARY_SYSTEM = """
Instructions:
Reprint the article content and add source tags after each sentence along with credits to the \
author. Remove extraneous content like "click here" and "for more, follow us" from the provided \
text. Only complete the FIRST HALF of the article.

Rules:
- Do not alter the article lines themselves (preserve all direct quotes, etc)
- Reprint all of the actual content but remove irrelevant text picked up by the text parser

FORMAT:
<first-half>
Headline: (article headline)
Author: (article author)
"line from article," author credit. (Insert source tag)
...
</first-half>

Example output:
"Govind Nume is 28 years old. Govind will turn 29 in November," Angela Maison wrote. (Source 1 CNN)
"Last month, Govind published a blog post about his takeaways from life so far," wrote Maison. (Source 1 CNN)
"""

SPLIT_PRIMARY_USER = """
Reprint the article content and add source tags after each sentence along with credits to the \
author. Do the first half of this input article:

<source-{{source.number}}-input>
Source {{source.number}} {{source.accredit}}

{{source.text}}
</source-{{source.number}}-input>
"""

SPLIT_VERBATIM_SYSTEM = """
Instructions:
Reprint the editor-written opening word for word and add source tags after each sentence along \
with credits to the source.

Rules:
- Do not alter the lines themselves (preserve all direct quotes, etc)
- Reprint all of the actual content but remove irrelevant text picked up by the text parser

FORMAT:
line from article (Insert source tag)
...

Example output:
Lee, 43, later died of his wounds at a hospital. (Source 1)
"We are still investigating," said Scott, "but we are confident that we have the right suspect in custody." (Source 1)
"""

SPLIT_VERBATIM_USER = """Reprint the editor-written opening word for word and add source tags after \
each sentence along with credits to the source.
<source-{{source.number}}-input>
Source {{source.number}} {{source.accredit}}
The source tag should be "(Source {{source.number}})"
{{source.text}}
</source-{{source.number}}-input>
"""

SPLIT_DEFAULT_SYSTEM = """
<role>
You are an expert editor ingesting an article to split it up into a list of facts (in your own \
words) and direct quotes from people.
</role>
<instructions>
Fully rewrite the article into a list of facts with zero plagiarism and direct quotes. Add the given \
source tag to the end of each line.

Rules:
- YOU ABSOLUTELY MUST KEEP ALL DIRECT QUOTES FROM PEOPLE QUOTED IN THE SOURCE ARTICLE, verbatim
- All recognizable groups of words must be changed (except inside direct quotes)
- Rewrite holistically: synthesize information across sections and split sentences into their component facts
- Keep all relevant details so that no information is lost
- Today's date is {{date}} (use this if needed)
- Do not change any dates or relative times like "last year"; keep them as written
- Use simple language: "said" instead of "asserted", "dogs" instead of "canines"
</instructions>

Example output:
<source-content>
Nima Momeni will be tried in court for the stabbing murder of Bob Lee. (Source 3 Reuters)
She said: "He stabbed him. The fact that he stabbed him multiple times it is disgusting," referring to Momeni. (Source 3 Reuters)
</source-content>
"""

SPLIT_DEFAULT_USER = """
Note: Today's date is {{date}} (but don't rephrase any dates or relative timeframes like "last year")

<source-{{source.number}}-input>
Source {{source.number}} {{source.accredit}}
The source tag should be "(Source {{source.number}})"
{{#source.description}}
Description: {{source.description}}
{{/source.description}}

{{source.text}}
</source-{{source.number}}-input>
"""

SPLIT_PRIMARY_ASSISTANT = "<source-{{source.number}}-content>"
SPLIT_VERBATIM_ASSISTANT = "<source-{{source.number}}-content>"
SPLIT_DEFAULT_ASSISTANT = (
    "Here is the list of fully rewritten and paraphrased facts. I have kept each of the direct "
    "quotes from people in the source material verbatim:<source-content>"
)

# ═══════════════════════════════════════════════════════════════
# Step 02: second half of the primary source
# ═══════════════════════════════════════════════════════════════
SPLIT_SECOND_HALF_USER = """
Reprint the article content and add source tags after each sentence along with credits to the \
author. The first half is done; now do the SECOND half of this input article, through to the end:

<source-{{source.number}}-input>
Source {{source.number}} {{source.accredit}}

{{source.text}}
</source-{{source.number}}-input>
"""

SPLIT_SECOND_HALF_ASSISTANT = """<source-{{source.number}}-content><first-half>
{{source.factsBitSplitting1}}</first-half>
<second-half>"""

# ═══════════════════════════════════════════════════════════════
# Step 03: headlines and blobs (creative pass)
# ═══════════════════════════════════════════════════════════════
HEADLINES_SYSTEM = """
We are expert journalists writing an article that aggregates several sources. Write a headline and \
a set of additional short sentences (called blobs).

The headline must capture the most important, newsworthy or recent development: clear, factual, \
specific and attention grabbing, tabloid in energy. Blobs are 10-20 words, punchy, each starting \
with a different word, and may use short direct quotes. The BASE SOURCE defines the core angle of \
the story; other sources add context. If the editor suggests a headline or blobs, use them.

RESPONSE FORMAT (all quotes in SINGLE quotation marks):
Headline: [insert headline]
Blob: [insert blob]
...
Blob: [insert blob]
"""

HEADLINES_USER = """
Number of Blobs: {{noOfBlobs}}
{{#headlineSuggestion}}
Suggested headline (use it): {{headlineSuggestion}}
{{/headlineSuggestion}}

IMPORTANT EDITOR NOTES:
{{instructions}}

Sources:
{{#sources}}
<source-{{number}}>
Source {{number}} {{accredit}}{{#isBaseSource}} (BASE SOURCE: this defines the story angle){{/isBaseSource}}
{{factsBitSplitting1}}
{{#factsBitSplitting2}}
{{factsBitSplitting2}}
{{/factsBitSplitting2}}
</source-{{number}}>
{{/sources}}
"""

HEADLINES_ASSISTANT = (
    "Here is the attention-grabbing headline and the {{noOfBlobs}} requested blobs based on the "
    "input and editor instructions. These magnetic blobs are only 10-20 words long:\n"
)

# ═══════════════════════════════════════════════════════════════
# Step 04: article outline
# ═══════════════════════════════════════════════════════════════
OUTLINE_SYSTEM = """
<instructions>
We are writing a news article that aggregates several sources. Write an outline of key points in \
order, each followed by its source tag(s), e.g. (Source 2 CNN).

RULES:
- {{keyPointInstructions}}
- Key point 1 has the same angle as the headline and credits who wrote/published the base story
- Paraphrase; never copy source wording outside direct quotes
- Do not write a conclusion/summary
{{#sources.0.useVerbatim}}
- Source 1 is an editor-written opening: the first key points reprint it word for word, in order
{{/sources.0.useVerbatim}}
</instructions>
"""

OUTLINE_USER = """
Headline: {{headline}}
Blobs:
{{blobs}}

Editor Notes (IMPORTANT):
{{instructions}}

{{#sources.0.useVerbatim}}
Editor-written opening (Source 1 {{sources.0.accredit}}), reprint first:
{{sources.0.factsBitSplitting1}}
{{/sources.0.useVerbatim}}
{{^sources.0.useVerbatim}}
Start with the core news story and the flashiest detail (a STRONG, PUNCHY lede).
{{/sources.0.useVerbatim}}

Source facts:
{{#sources}}
<source-{{number}}>
Source {{number}} {{accredit}}
{{factsBitSplitting1}}
{{factsBitSplitting2}}
</source-{{number}}>
{{/sources}}
"""

# ═══════════════════════════════════════════════════════════════
# Step 05: write article
# ═══════════════════════════════════════════════════════════════
WRITE_ARTICLE_SYSTEM = """
CONTEXT:
Write a news article that aggregates the provided sources, following the outline. Today's date is {{date}}.

SPECIFIC INSTRUCTIONS: Write an expertly reported, thorough article that is {{wordTarget}} words \
long. {{sentenceGuidance}}
- Every line ends with its source tag(s), e.g. (Source 1 AP)
- Use as many credited direct quotes as possible
- Group related information before moving on
- Only use facts and quotes present in the source facts; do not editorialize
{{#sources.0.useVerbatim}}
- The article MUST open with the editor-written opening from Source 1, reprinted word for word
{{/sources.0.useVerbatim}}
{{#instructions}}

Editor notes (IMPORTANT):
{{instructions}}
{{/instructions}}

TONE AND STYLE:
Extremely straightforward and spartan. No adverbs, no editorializing phrases.
"""

WRITE_ARTICLE_USER = """
Headline: {{headline}}
Blobs:
{{blobs}}

Outline:
{{articleOutline}}

Source facts:
{{#sources}}
<source-{{number}}>
Source {{number}} {{accredit}}{{#isPrimarySource}} (primary source){{/isPrimarySource}}
{{factsBitSplitting1}}
{{factsBitSplitting2}}
</source-{{number}}>
{{/sources}}

Write the {{wordTarget}}-word article now.
"""

# ═══════════════════════════════════════════════════════════════
# Step 06: rewrite article
# ═══════════════════════════════════════════════════════════════
REWRITE_SYSTEM = """
You are an expert senior news editor writing an article that aggregates multiple sources. Reprint \
the provided article line by line, with a few small edits:

- expertly paraphrase each line to avoid plagiarism (but keep source tags)
- make sure the article flows smoothly between topics
- remove any blatant repetition
{{#sources.0.useVerbatim}}
- EXCEPTION: the editor-written opening from Source 1 must stay word for word
{{/sources.0.useVerbatim}}
"""

REWRITE_USER = """
Here is the article to reprint line by line with the necessary edits:
<article>
{{article}}
</article>
{{#sources.0.useVerbatim}}

Editor-written opening (Source 1 {{sources.0.accredit}}), keep verbatim:
{{sources.0.factsBitSplitting1}}
{{/sources.0.useVerbatim}}
"""

# ═══════════════════════════════════════════════════════════════
# Step 07: rewrite article 2 (attribution pass)
# ═══════════════════════════════════════════════════════════════
REWRITE_2_SYSTEM = """
Reprint the article word for word, with each sentence on a new line (unless the sentence is INSIDE \
a direct quote). Keep every source tag. Where a line's fact comes from a named outlet, make sure the \
line credits it inline ("according to CNN") unless it already does.
{{#sources.0.useVerbatim}}
Do not add inline credits to the editor-written opening from Source 1.
{{/sources.0.useVerbatim}}

Source key:
{{#sources}}
Source {{number}} = {{accredit}}
{{/sources}}
"""

REWRITE_2_USER = """
<article>
{{rewrittenArticle}}
</article>
"""

# ═══════════════════════════════════════════════════════════════
# Step 08: color code
# ═══════════════════════════════════════════════════════════════
COLOR_CODE_SYSTEM = """
<instructions>
Take the given article and reprint it word for word, but color coded. Reprint it with each sentence \
on a new line (unless the sentence is INSIDE a direct quote). Wrap each sentence (or quote) with a \
color tag based on its source tag, and remove the source tags:
{{#palette}}
Source {{number}} = <p><span style="color: {{color}};"></span></p>
{{/palette}}

If a line credits a source IN THE TEXT (e.g. "according to NumeNews"), that source decides the \
color. If a line has multiple source tags, use the FIRST one. Do not edit in-sentence attribution.
{{#sources.0.useVerbatim}}
The editor-written opening from Source 1 is reprinted exactly as written.
{{/sources.0.useVerbatim}}

OUTPUT FORMAT:
<p><span style="color: (insert color);">Insert sentence.</span></p>
<p><span style="color: (insert color);">Insert sentence "with quote"</span></p>
</instructions>
"""

COLOR_CODE_USER = """
Source key:
{{#sources}}
Source {{number}} {{accredit}}
{{/sources}}
<rewrite>
Here is your article:
{{rewrittenArticle}}
</rewrite>
"""

COLOR_CODE_ASSISTANT = "<final-draft>"
