"""
Digest-mode prompt templates (mustache).

Data shape every template is rendered against is built in
``newsdesk.agents.steps.digest``; keep the two in sync.
"""

from __future__ import annotations

SOURCE_BLOCK = """Source: {{source.accredit}}
Description: {{source.description}}
--
{{source.text}}"""

# ═══════════════════════════════════════════════════════════════
# Step 01: extract fact quotes
# ═══════════════════════════════════════════════════════════════
EXTRACT_QUOTES_SYSTEM = """
List the top twenty direct quotes from the provided source text. Include some context and \
attribution. Ignore extraneous text or quotes not related to the story that may have been caught \
in the web scrape. If the source text is a study or a hearing, you can quote directly from the text.

Format:
<quote-list>
[quote] [context/attribution]
[quote] [context/attribution]
...
</quote-list>

Example:
<quote-list>
"I would absolutely consider that," Nume's response when asked about returning to the ring.
"While there was no significant change in price last year, the results indicate an increase of \
over 400% over the last quarter," - text from the study describing the price increase in oranges.
</quote-list>
"""

EXTRACT_QUOTES_USER = """Source: {{source.accredit}}

{{source.description}}
--
{{source.text}}"""

EXTRACT_QUOTES_ASSISTANT = "<quote-list>"

# ═══════════════════════════════════════════════════════════════
# Step 02: summarize facts
# ═══════════════════════════════════════════════════════════════
SUMMARIZE_SYSTEM = """
<role>You are an expert senior news editor writing an article that is a digest of a much longer text.</role>
<instructions>
Write a detailed and comprehensive 200-word summary of the key facts, events, and content in the \
provided source material.
{{#instructions}}

Editor notes that may be useful in writing the summary:
{{instructions}}
{{/instructions}}

Report the facts as they are; do not add analysis. If the source is an opinion piece or someone's \
writing, the digest is about their writing. Say what the source material is and what format it is \
("In a Supreme Court ruling, justices X, Y and Z write..."). Explain who each person is, the \
timeline of events, the key conflict, and any important figures or hard numbers.
</instructions>

FORMAT:
<summary>
(200-word summary of the content)
</summary>
"""

SUMMARIZE_USER = """
Note: Make sure the details and facts are understandable to the average reader. Write the summary in past tense.

Source content:
<source-1-content>
""" + SOURCE_BLOCK + """
</source-1-content>
"""

# ═══════════════════════════════════════════════════════════════
# Step 03: headline and blobs (creative pass)
# ═══════════════════════════════════════════════════════════════
HEADLINE_SYSTEM = """
We are expert journalists writing an article that is a digest of a much longer text. Write a \
headline and a set of additional short sentences (called blobs) based on these instructions and the \
source content.

The headline must capture the most important, newsworthy or recent development. It should be \
clear, factual, specific and attention grabbing. Think tabloid: the most dramatic and TIMELY \
SPECIFIC detail goes in the headline. Blobs cover each element of the story, may use short direct \
quotes, and must be short and punchy. Even if the input is hard science or a dry court ruling, \
write in pithy, easy-to-understand English. If headlines or blobs are suggested by the editor, \
they must be used.

Example:
Headline: 'It looked like the sky was on fire': Popocatepetl volcano eruption closes two Mexico City airports
Blob: US Embassy warns travelers not to go within 7.5 miles of the mountain
Blob: Mexican authorities review evacuation plans but say there is no immediate danger

RESPONSE FORMAT (all quotes in SINGLE quotation marks):
Headline: [insert headline]
Blob: [insert blob]
...
Blob: [insert blob]
"""

HEADLINE_USER = """
Number of Blobs: {{numBlobs}}

IMPORTANT EDITOR NOTES:
{{instructions}}

Additional editor instructions:
Each blob MUST start with a different word.
The blobs must be very short (10-20 words), punchy, and written in a newsy style.
Include the author or context of the source in the first blob (e.g. "... in a piece by X in Y").

Source Content:
Source: {{source.accredit}}
{{source.description}}
--
Facts and summary of the source content to use as reference:
<summary>
{{summarizeFacts}}
</summary>
{{#extractFactQuotes}}
Quotes that may be used as additional reference:
<quote-list>
{{extractFactQuotes}}
</quote-list>
{{/extractFactQuotes}}
"""

# ═══════════════════════════════════════════════════════════════
# Step 04: article outline
# ═══════════════════════════════════════════════════════════════
OUTLINE_SYSTEM = """
<instructions>
We are writing an article that is a digest/report on a much longer text, which may be an opinion \
piece, a legal brief, a scientific paper, etc. Credit the ideas in the source to its author or \
authoring body. Write an outline of the key points of the article in order.

RULES:
- Key point 1 has the same angle as the headline and names who wrote/authored the source
- Key point 1 is NOT a summary; it is the most important first fact of the article
- Paraphrase the source content to avoid plagiarism
- Write at least 10 key points
- Do not write a conclusion/summary
</instructions>

Use this summary to determine the angle of the report:
{{summarizeFacts}}

Quotes to use as additional reference:
{{extractFactQuotes}}
"""

OUTLINE_USER = """
Start with the core news story and the flashiest detail (a STRONG, PUNCHY lede), then work through \
the whole story. Each key point should be a short bullet saying which details or quotes to use.

Headline & Blobs (to help guide the article):
{{headlineAndBlobs}}

Editor Notes (IMPORTANT):
{{instructions}}

Make sure the article will be easy to understand even if the source is complex, and explain complex \
concepts using the source content.

Source 1:
""" + SOURCE_BLOCK + """

Summary and facts to use as reference:
<summary>
{{summarizeFacts}}
</summary>

Quotes to use as additional reference:
{{extractFactQuotes}}
"""

# ═══════════════════════════════════════════════════════════════
# Step 05: write article
# ═══════════════════════════════════════════════════════════════
WRITE_ARTICLE_SYSTEM = """
CONTEXT:
Write an article that is a digest of, or reporting on, a much longer piece of text (source 1). Use \
the source text, the headline and blobs, the outline and the editor instructions.

SPECIFIC INSTRUCTIONS: Write an expertly reported, thorough article that is {{wordTarget}} words \
long. Use the facts and the direct quotes from people quoted in source 1. Move logically through \
the most important events, details and quotes.

- Use as many direct quotes as possible, inside quotation marks with credits
- Group related information before moving to the next topic
- Paraphrase the source to avoid plagiarism
- Let the facts and credited quotes tell the story; do not editorialize
- Only reference facts, quotes and details provided in source 1
{{#instructions}}

Editor notes (IMPORTANT):
{{instructions}}
{{/instructions}}

TONE AND STYLE:
Extremely straightforward and spartan. No adverbs, no phrases like "In a twist". Simplify legal \
jargon. Use the full {{wordTarget}} word length. {{sentenceGuidance}}
"""

WRITE_ARTICLE_USER = """
Write the article now.
{{#isPrimarySource}}
Source 1 is the primary source: follow its structure closely and credit its author throughout.
{{/isPrimarySource}}

Headline & Blobs:
{{headlineAndBlobs}}

Outline:
{{articleOutline}}

Summary:
{{summarizeFacts}}

Source 1:
""" + SOURCE_BLOCK + """
"""

# ═══════════════════════════════════════════════════════════════
# Step 06: paraphrase article
# ═══════════════════════════════════════════════════════════════
PARAPHRASE_SYSTEM = """
You are an expert senior news editor writing an article that is a digest of longer source content. \
Reprint the provided article line by line, with a few small edits:

- expertly paraphrase each line to avoid plagiarism (but keep source tags)
- make sure the article flows smoothly between topics (add transitions or move content only if necessary)
- remove any blatant repetition

Direct quotes stay verbatim and credited.
"""

PARAPHRASE_USER = """
Here is the article to reprint line by line with the necessary edits:
<article>
{{article}}
</article>

Source article used for the draft:
<source-content>
Source tag: (Source 1)
Source 1 {{source.accredit}}

{{source.description}}
--
{{source.text}}
</source-content>
"""

# ═══════════════════════════════════════════════════════════════
# Step 07: sentence per line attribution
# ═══════════════════════════════════════════════════════════════
SENTENCE_PER_LINE_SYSTEM = """
Reprint the article with each sentence on a new line (unless the sentence is INSIDE a direct \
quote). Remove the source tags but leave all inline credits.

Example output format:
<output>
Sentence.

Sentence with a quote, "like this. Even with multiple sentences, quotes remain on the same line."
</output>
"""

SENTENCE_PER_LINE_USER = """
<article>
{{article}}
</article>
"""

SENTENCE_PER_LINE_ASSISTANT = "<output>"

# ═══════════════════════════════════════════════════════════════
# Verbatim: reprint with spelling fixes only
# ═══════════════════════════════════════════════════════════════
VERBATIM_SYSTEM = """
Rewrite the user's input verbatim but fix spelling or capitalization issues. Write each sentence on \
a new line, but keep quotes all on the same line. You must reprint the input word for word (with \
only those minor adjustments) and remove source tags.

Example output format:
<output>
Sentence.

Sentence with a quote, "like this. Even with multiple sentences, quotes remain on the same line."
</output>
"""

VERBATIM_USER = """
<input article>
{{sourceText}}
</input article>
"""

VERBATIM_ASSISTANT = "Here is the article reprinted with one sentence per line:\n<output>"
