from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('', views.list_files, name='list'),
    path('upload', views.upload, name='upload'),
    path('search', views.search_files, name='search'),
    path('share/<str:file_id>', views.share_file, name='share'),
    path('shared/<str:token>', views.shared_file, name='shared'),
    path('<str:file_id>', views.delete_file, name='delete'),
]
