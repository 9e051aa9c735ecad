"""
Tests for the reactive render surface.
"""

from photosheet.layout import RenderMode, RenderSurface, find_affordances, project_document


class TestRenderSurface:
    """Tests for RenderSurface."""

    def test_surface_when_no_document_then_no_views(self, store):
        surface = RenderSurface(store)

        assert surface.views == ()
        assert surface.current_view is None

    def test_surface_when_store_mutates_then_reprojects(self, custom_store):
        # Arrange
        surface = RenderSurface(custom_store)
        seen = []
        surface.on_change(seen.append)

        # Act
        custom_store.add_page()

        # Assert
        assert len(surface.views) == 2
        assert len(seen) == 1
        assert surface.current_view.page_id == custom_store.document.current_page.id

    def test_surface_when_slot_added_then_view_has_slot(self, custom_store):
        surface = RenderSurface(custom_store)
        page_id = custom_store.document.current_page.id

        slot_id = custom_store.add_slot(page_id)

        assert [s.slot_id for s in surface.current_view.slots] == [slot_id]

    def test_surface_when_closed_then_stops_following(self, custom_store):
        surface = RenderSurface(custom_store)
        seen = []
        surface.on_change(seen.append)

        surface.close()
        custom_store.add_page()

        assert seen == []
        assert len(surface.views) == 1

    def test_surface_when_listener_removed_then_not_called(self, custom_store):
        surface = RenderSurface(custom_store)
        seen = []
        remove = surface.on_change(seen.append)

        remove()
        custom_store.add_page()

        assert seen == []

    def test_surface_when_print_mode_then_views_have_no_affordances(self, custom_store):
        custom_store.add_slot(custom_store.document.current_page.id)

        surface = RenderSurface(custom_store, mode=RenderMode.PRINT)

        assert all(find_affordances(view) == [] for view in surface.views)


class TestProjectDocument:
    def test_project_document_when_none_then_empty(self):
        assert project_document(None, RenderMode.PRINT) == ()

    def test_project_document_when_pages_then_one_view_each(self, custom_store):
        custom_store.add_page()

        views = project_document(custom_store.document, RenderMode.INTERACTIVE)

        assert [v.page_id for v in views] == [p.id for p in custom_store.document.pages]
