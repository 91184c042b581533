"""ExpireQuotes — periodic sweep that closes lapsed quotes.

Invoked by an external trigger (cron calling ``manage.py expire-quotes`` or
``POST /quotes/expire``). Re-running the sweep when nothing new has lapsed
changes nothing.
"""

from datetime import UTC, datetime

from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.quote.quote import Quote


@sales.command(part_of="Quote")
class ExpireQuotes:
    as_of = DateTime()  # defaults to now


@sales.command_handler(part_of=Quote)
class ExpireQuotesHandler:
    @handle(ExpireQuotes)
    def expire_quotes(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(Quote)

        expired = []
        for quote in repo.expirable(as_of):
            if quote.expire(as_of):
                repo.add(quote)
                expired.append(str(quote.id))

        if expired:
            logger.info("quotes_expired", count=len(expired), as_of=as_of.isoformat())
        return expired
