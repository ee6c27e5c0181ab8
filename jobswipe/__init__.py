"""
Jobswipe package: job-listing ingestion and ranking for academics.

The package is organised as a small pipeline, one subpackage per step:

1. **collect** – Fetch the search results page of the job board for a
   keyword.  Two interchangeable fetch strategies are provided: a plain
   HTTP fetch (``aiohttp``) and a headless browser (Selenium) for pages
   that defend against bots or render on the client.
2. **normalize** – Parse the results markup into immutable-identity
   `JobListing` records, resolving relative links against the site
   origin and defaulting missing fields.
3. **resume** – The read-only `CandidateProfile` built from the CV
   document owned by the surrounding application.
4. **rank** – Score every listing deterministically against the
   profile, sort, and optionally refine the top N scores with an LLM
   judge running in the background.
5. **cli** – Command line entry point wiring the above together.

Nothing here persists data: listings and match results are returned as
plain values for the caller to store.
"""

from importlib import metadata

try:
    __version__ = metadata.version("jobswipe")
except metadata.PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"
