# Services package.
#
#   article_service  - cache-aside orchestration for Article (ArticleService)
#   article_store    - SQLAlchemy implementation of the article store port
#   article_cache    - typed entity / list caches over a key-value backend
#   ports            - Protocols ArticleService depends on
#   user_service     - registration, login and CRUD for User
#   media_service    - uploaded files on local storage plus metadata rows
#
# The user and media modules expose async functions that take an
# AsyncSession first.  Users flush and leave the commit to ``get_db``;
# media commits itself so files are only removed after the row change.
# Articles go through ArticleService instead, which is
# built per request by ``dependencies.get_article_service``.
